from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from fastapi.security import HTTPBearer
from pydantic import BaseModel, ValidationError
from enum import Enum

from .config import settings

# JWT Security; a missing header is reported like any other bad token
security = HTTPBearer(auto_error=False)

class Role(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

class Claims(BaseModel):
    """Identity resolved from a bearer token."""
    identifier: str
    role: Role

# JWT utilities
def create_access_token(
    identifier: str,
    role: Role,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token."""
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "sub": identifier,
        "role": role.value,
        "exp": expire,
        "token_type": "access"
    }

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt

def verify_token(token: str) -> Optional[TokenPayload]:
    """Verify and decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )

        return TokenPayload(**payload)

    except (JWTError, ValidationError):
        return None

def resolve_claims(token: Optional[str]) -> Optional[Claims]:
    """Resolve a token into claims, or None when it is unusable.

    Expired, malformed, refresh-type and unknown-role tokens all collapse
    to None so callers cannot tell them apart.
    """
    if not token:
        return None

    token_payload = verify_token(token)
    if not token_payload or token_payload.token_type != "access":
        return None

    if not token_payload.sub or token_payload.role not in {r.value for r in Role}:
        return None

    return Claims(identifier=token_payload.sub, role=Role(token_payload.role))
