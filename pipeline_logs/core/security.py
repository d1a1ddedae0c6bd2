"""Bearer token validation for API endpoints.

Tokens are issued by an external identity service; this module only
verifies them.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


def validate_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Validate JWT token locally.

    Args:
        token: JWT token to validate

    Returns:
        Token payload if valid, None if invalid
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as e:
        logger.warning("jwt_validation_failed", error=str(e))
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Dict[str, Any]:
    """
    Dependency to get current authenticated user.

    Returns an anonymous principal when authentication is disabled.

    Raises:
        HTTPException: If authentication fails
    """
    settings = get_settings()

    if not settings.auth_enabled:
        return {"sub": "anonymous"}

    if credentials is not None:
        user_data = validate_token(credentials.credentials)
        if user_data:
            return user_data

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
