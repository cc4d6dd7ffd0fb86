"""
Role checks shared by the services.
"""
from typing import Optional

from votecore.core.exceptions import AuthorizationError
from votecore.core.security import Principal


def is_admin(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.is_admin


def require_admin(principal: Optional[Principal], action: str) -> Principal:
    """Raise AuthorizationError unless the principal is an admin."""
    if not is_admin(principal):
        raise AuthorizationError(f"Only administrators can {action}")
    return principal
