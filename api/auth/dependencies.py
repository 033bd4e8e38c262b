"""
Authentication Dependencies

FastAPI dependencies for authentication and role-based authorization.
"""

from typing import Optional, List, Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from database.connection import get_db
from database.models import User, is_valid_object_id
from api.auth.jwt import verify_token, TokenError


# OAuth2 scheme for bearer token extraction
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Get the current authenticated user from the JWT token.

    Accepts `Authorization: Bearer <token>` or the legacy `x-auth-token`
    header. Returns None if no token is provided (for optional auth).
    Raises HTTPException if the token is invalid.
    """
    token = token or request.headers.get("x-auth-token")
    if token is None:
        return None

    try:
        payload = verify_token(token, "access")
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

    user_id = payload.get("sub")
    if not is_valid_object_id(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    # Rate limiter keys on this when present
    request.state.user_id = user.id
    return user


async def get_current_active_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """
    Get the current user, requiring authentication.

    Raises HTTPException if user is not authenticated or inactive.
    """
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied"
        )

    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return current_user


def require_roles(allowed_roles: List[str]) -> Callable:
    """
    Dependency factory for role-based access control.

    Usage:
        @router.delete("/vendors/{id}")
        async def delete_vendor(user: User = Depends(require_roles(["admin"]))):
            ...
    """
    async def role_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"User role {current_user.role} is not authorized to access this route"
            )

        return current_user

    return role_checker


require_admin = require_roles(["admin"])
