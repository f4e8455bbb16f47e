from typing import Any, Dict, Generator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from carver.core import security
from carver.db.session import SessionLocal
from carver.schemas.user import AppUserCreate
from carver.services.carver_matrix_service import CarverMatrixService

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_matrix_service(db: Session = Depends(get_db)) -> CarverMatrixService:
    return CarverMatrixService(db)


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    """Verified claims of the caller's bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return security.decode_token(credentials.credentials)
    except security.JWTError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )


def get_current_identity(claims: Dict[str, Any] = Depends(get_current_claims)) -> str:
    """
    Acting identity of the caller, read from the bearer token's configured claim.
    """
    identity = security.identity_from_claims(claims)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token carries no identity claim",
        )
    return identity


def get_token_user(claims: Dict[str, Any] = Depends(get_current_claims)) -> AppUserCreate:
    """
    Profile of the caller as the identity provider describes it.

    `sub` becomes the keycloak id; `preferred_username` falls back to the email.
    """
    subject = security.identity_from_claims(claims, claim="sub")
    email = security.identity_from_claims(claims, claim="email")
    if subject is None or email is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token carries no subject or email claim",
        )
    try:
        return AppUserCreate(
            keycloak_id=subject,
            username=security.identity_from_claims(claims, claim="preferred_username") or email,
            email=email,
            first_name=claims.get("given_name"),
            last_name=claims.get("family_name"),
            full_name=claims.get("name"),
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Token profile claims are invalid: {e.errors()[0]['msg']}",
        )
