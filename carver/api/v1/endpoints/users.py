from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from carver import crud
from carver.api import deps
from carver.schemas.user import AppUserCreate, AppUserProfile, AppUserRead

router = APIRouter()


@router.post("", response_model=AppUserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    *,
    db: Session = Depends(deps.get_db),
    user_in: AppUserCreate,
) -> Any:
    """
    Register a user record for an identity-provider account.
    """
    if crud.user.get_by_email(db, email=user_in.email) or crud.user.get_by_keycloak_id(
        db, keycloak_id=user_in.keycloak_id
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email or identity-provider id already exists",
        )
    return crud.user.create(db, obj_in=user_in)


@router.get("/me", response_model=AppUserProfile)
def read_current_user(
    db: Session = Depends(deps.get_db),
    token_user: AppUserCreate = Depends(deps.get_token_user),
) -> Any:
    """
    The caller's user record, created or refreshed from the token claims,
    with the matrices they own. Its `userId` is the owner id for matrix creation.
    """
    return crud.user.upsert(db, obj_in=token_user)


@router.get("/{user_id}", response_model=AppUserRead)
def read_user(
    user_id: int,
    db: Session = Depends(deps.get_db),
) -> Any:
    user = crud.user.get(db, id=user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
