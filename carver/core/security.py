from typing import Any, Dict, Optional
from jose import jwt, JWTError
from carver.core.config import settings

# Export the algorithm constant for use in other modules
ALGORITHM = settings.ALGORITHM


def decode_token(token: str) -> Dict[str, Any]:
    """Verify a bearer token issued by the identity provider and return its claims."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def identity_from_claims(claims: Dict[str, Any], claim: Optional[str] = None) -> Optional[str]:
    """
    Pick the acting identity out of verified claims.

    Score maps and membership lists compare identities verbatim; `claim`
    defaults to settings.IDENTITY_CLAIM.
    """
    value = claims.get(claim or settings.IDENTITY_CLAIM)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


__all__ = ["ALGORITHM", "JWTError", "decode_token", "identity_from_claims"]
