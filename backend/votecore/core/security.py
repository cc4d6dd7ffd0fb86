"""
Identity utilities.

Authentication itself happens in the identity gateway; the core only decodes
the bearer token it issued and trusts the principal inside.
"""
import enum
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Dict, Any

from jose import jwt, JWTError

from votecore.core.clock import utcnow
from votecore.core.config import settings


class UserRole(str, enum.Enum):
    """Role claim carried by identity tokens."""
    VOTER = "voter"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """An authenticated caller as asserted by the identity gateway."""

    user_id: str
    role: UserRole = UserRole.VOTER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()

    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": utcnow(),
        "type": "access"
    })

    encoded_jwt = jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )
    return encoded_jwt


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def principal_from_token(token: str) -> Optional[Principal]:
    """Build a principal from a bearer token, or None if it is not usable."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    try:
        role = UserRole(payload.get("role", UserRole.VOTER.value))
    except ValueError:
        return None

    return Principal(user_id=str(user_id), role=role)
