"""
Authentication Router

Endpoints for user registration, login, and token management.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from database.connection import get_db
from database.models import User, Vendor, is_valid_object_id
from api.auth.jwt import create_access_token, create_refresh_token, verify_token, TokenError
from api.auth.password import hash_password, verify_password, MIN_PASSWORD_LENGTH
from api.auth.dependencies import get_current_active_user
from api.middleware.rate_limit import limiter, LIMIT_AUTH


logger = logging.getLogger("rfp_manager.api.auth")

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ============================================================================
# Request Models
# ============================================================================

class UserRegister(BaseModel):
    """User registration request. Admin accounts are created by the seed script."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    role: Literal["user", "vendor"] = "user"
    vendor_id: Optional[str] = Field(default=None, alias="vendorId")

    model_config = {"populate_by_name": True}


class UserLogin(BaseModel):
    """User login request."""
    email: EmailStr
    password: str


class TokenRefresh(BaseModel):
    """Token refresh request."""
    refresh_token: str


# ============================================================================
# Helpers
# ============================================================================

def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "vendor_id": user.vendor_id,
        "is_active": user.is_active,
    }


def issue_tokens(user: User) -> dict:
    token_data = {"sub": user.id, "role": user.role, "vendor_id": user.vendor_id}
    return {
        "token": create_access_token(token_data),
        "refresh_token": create_refresh_token(token_data),
        "token_type": "bearer",
        "expires_in": settings.jwt_expire_minutes * 60,
        "user": user_to_dict(user),
    }


# ============================================================================
# Auth Endpoints
# ============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(LIMIT_AUTH)
async def register(
    request: Request,
    data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user and return tokens."""
    email = data.email.lower()

    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists"
        )

    if data.vendor_id:
        vendor = await db.get(Vendor, data.vendor_id) if is_valid_object_id(data.vendor_id) else None
        if vendor is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Vendor not found"
            )

    user = User(
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        role=data.role,
        vendor_id=data.vendor_id,
        is_active=True
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered user {user.id} ({user.role})")
    return {"success": True, "data": issue_tokens(user)}


@router.post("/login")
@limiter.limit(LIMIT_AUTH)
async def login(
    request: Request,
    data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password."""
    result = await db.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    return {"success": True, "data": issue_tokens(user)}


@router.post("/refresh")
async def refresh_token(
    data: TokenRefresh,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair."""
    try:
        payload = verify_token(data.refresh_token, "refresh")
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

    user_id = payload.get("sub")
    user = await db.get(User, user_id) if is_valid_object_id(user_id) else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer valid"
        )

    return {"success": True, "data": issue_tokens(user)}


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_active_user)):
    """Get current user info."""
    return {"success": True, "data": user_to_dict(current_user)}
