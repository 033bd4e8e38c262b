"""
Authentication Package

JWT-based authentication with role checks.
"""

from api.auth.jwt import (
    create_access_token,
    create_refresh_token,
    verify_token,
    decode_token,
    TokenError
)
from api.auth.password import (
    hash_password,
    verify_password
)
from api.auth.dependencies import (
    get_current_user,
    get_current_active_user,
    require_roles,
    require_admin
)

__all__ = [
    # JWT
    "create_access_token",
    "create_refresh_token",
    "verify_token",
    "decode_token",
    "TokenError",
    # Password
    "hash_password",
    "verify_password",
    # Dependencies
    "get_current_user",
    "get_current_active_user",
    "require_roles",
    "require_admin"
]
