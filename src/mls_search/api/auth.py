"""
API Token Authentication for FastAPI

Protects search endpoints with a shared API token, sent either as
``Authorization: Bearer <token>`` or ``x-api-token: <token>``.
"""
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from src.mls_search.api.dependencies import get_settings
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)


def extract_token(authorization: Optional[str], api_token: Optional[str]) -> Optional[str]:
    """
    Pull the token from the Authorization header or the x-api-token header.

    Args:
        authorization: Raw Authorization header
        api_token: Raw x-api-token header

    Returns:
        Token string or None
    """
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return api_token or None


def verify_api_token(
    authorization: Optional[str] = Header(None),
    x_api_token: Optional[str] = Header(None),
    settings=Depends(get_settings),
) -> None:
    """
    Reject requests without a valid API token.

    Raises:
        HTTPException: 401 if no token was sent, 403 if it does not match
    """
    token = extract_token(authorization, x_api_token)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No API token provided",
        )

    expected = settings.mls_api_token
    if not expected or not secrets.compare_digest(token, expected):
        logger.warning("api_token_rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API token",
        )
