"""
API dependencies for identity, and shared route metadata.
"""
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from votecore.core.security import Principal, principal_from_token
from votecore.schemas.tally import ErrorResponse


security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Principal]:
    """
    Get the caller from the bearer token issued by the identity gateway.
    Returns None if no valid token is provided.
    """
    if not credentials:
        return None

    return principal_from_token(credentials.credentials)


async def require_authentication(
    current_principal: Optional[Principal] = Depends(get_current_principal)
) -> Principal:
    """
    Require a valid authenticated caller.
    Raises 401 if not authenticated.
    """
    if not current_principal:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_principal


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI ``responses`` entries for core failures rendered as ErrorResponse."""
    return {code: {"model": ErrorResponse} for code in status_codes}
