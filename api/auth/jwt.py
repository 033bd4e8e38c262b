"""
JWT Token Utilities

Create and verify JWT access and refresh tokens.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from config.settings import settings


class TokenError(Exception):
    """Token validation error."""
    pass


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "exp": now + expires_delta,
        "iat": now,
        "type": token_type
    })

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data (should include 'sub' for user ID and 'role')
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    return _encode(
        data,
        "access",
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )


def create_refresh_token(data: dict) -> str:
    """Create a longer-lived JWT refresh token."""
    return _encode(data, "refresh", timedelta(days=settings.jwt_refresh_expire_days))


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        TokenError: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        raise TokenError(f"Invalid token: {str(e)}")


def verify_token(token: str, token_type: str = "access") -> dict:
    """
    Verify a JWT token and check its type.

    Raises:
        TokenError: If token is invalid, expired, or wrong type
    """
    payload = decode_token(token)

    if payload.get("type") != token_type:
        raise TokenError(f"Invalid token type. Expected {token_type}")

    return payload
