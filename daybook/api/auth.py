"""API authentication using API keys"""
import os
import logging
from typing import Optional
from fastapi import Header, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from daybook.exceptions import ValidationError
from daybook.monitoring import set_user_context

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_api_keys() -> list[str]:
    """Load API keys from environment variable"""
    api_keys_str = os.getenv("API_KEYS", "")
    if not api_keys_str:
        logger.warning("No API_KEYS configured in environment")
        return []
    return [key.strip() for key in api_keys_str.split(",") if key.strip()]


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """
    Verify API key from Authorization header

    Args:
        credentials: HTTP authorization credentials

    Returns:
        The verified API key

    Raises:
        HTTPException: If API key is invalid
    """
    api_key = credentials.credentials
    valid_keys = get_api_keys()

    if not valid_keys:
        logger.error("No API keys configured - rejecting all requests")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    if api_key not in valid_keys:
        logger.warning(f"Invalid API key attempt: {api_key[:10]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    logger.debug(f"API key validated: {api_key[:10]}...")
    return api_key


async def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    User identity forwarded by the auth collaborator in X-User-Id

    Raises:
        ValidationError: If the header is missing or blank
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise ValidationError("header is required", field="X-User-Id")
    set_user_context(user_id)
    return user_id


async def require_admin(x_user_admin: Optional[str] = Header(default=None)) -> None:
    """Reject callers without X-User-Admin: true"""
    if (x_user_admin or "").lower() != "true":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
