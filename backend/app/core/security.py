"""Security utilities for session credentials."""

import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from jose import JWTError, jwt

from app.config import settings
from app.utils.datetime_utils import utc_now

SESSION_TOKEN_TYPE = "session"


def create_session_token(
    subject: str, expires_delta: Optional[timedelta] = None
) -> tuple[str, datetime]:
    """
    Create a signed session JWT for a local account.

    Only the subject is embedded; profile data is returned to the caller
    separately so the credential never carries stale profile fields.

    Args:
        subject: Local account id (``provider:providerUserId``)
        expires_delta: Optional custom lifetime

    Returns:
        Tuple of (encoded token, expiration)

    Raises:
        ValueError: If no signing key is configured
        JWTError: If encoding fails
    """
    if not settings.SECRET_KEY:
        raise ValueError("SECRET_KEY is not configured")

    issued_at = utc_now()
    expire = issued_at + (expires_delta or timedelta(minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES))

    claims = {
        "sub": subject,
        "iat": issued_at,
        "exp": expire,
        "iss": settings.SESSION_TOKEN_ISSUER,
        "type": SESSION_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    return token, expire


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a session JWT.

    Args:
        token: JWT token to decode

    Returns:
        Decoded token payload

    Raises:
        JWTError: If token is invalid, expired or issued by someone else
    """
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        issuer=settings.SESSION_TOKEN_ISSUER,
    )


def decode_session_token(token: str) -> dict[str, Any]:
    """
    Decode a session credential issued by the federated login bridge.

    Raises:
        JWTError: If the token is invalid, expired, or not a session token
    """
    payload = decode_token(token)
    if payload.get("type") != SESSION_TOKEN_TYPE or not payload.get("sub"):
        raise JWTError("Not a session token")
    return payload
