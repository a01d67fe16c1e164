"""Bearer token utilities.

Identity is established elsewhere; this service only mints tokens for
tooling and tests, and verifies the ones it receives.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from worktrack.config import settings


def create_access_token(
    user_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> isinstance(token, str)
        True
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    to_encode = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> str:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        User ID from token

    Raises:
        JWTError: If token is invalid, expired or has no subject
    """
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id: Optional[str] = payload.get("sub")

    if user_id is None:
        raise JWTError("Token payload missing 'sub' claim")

    return user_id
