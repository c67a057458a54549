"""User profile and administration endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_auth_service,
    get_current_claims,
    get_current_superuser,
    get_user_service,
)
from app.core.tokens import TokenClaims
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.user import UserRead, UserUpdate
from app.services.auth_service import AuthService
from app.services.user_service import UserService

router = APIRouter()


@router.get("/profile", response_model=ApiResponse[UserRead])
async def get_profile(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse[UserRead]:
    """Get the current user's profile."""
    return ApiResponse(data=await user_service.get_profile(claims.user_id))


@router.put("/profile", response_model=ApiResponse[UserRead])
async def update_profile(
    user_in: UserUpdate,
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse[UserRead]:
    """
    Update the current user's username and/or email.

    Raises:
        ValidationFailedError: Malformed username or email
        ConflictError: Username or email already in use
    """
    user = await user_service.update_profile(
        claims.user_id,
        username=user_in.username,
        email=user_in.email,
    )
    return ApiResponse(message="Profile updated successfully", data=user)


@router.delete("/profile", response_model=ApiResponse[None])
async def delete_account(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse[None]:
    """Delete the current user's account, posts and sessions."""
    await user_service.delete_account(claims.user_id)
    return ApiResponse(message="Account deleted successfully")


@router.put("/{user_id}/activate", response_model=ApiResponse[UserRead])
async def activate_user(
    user_id: uuid.UUID,
    _: Annotated[User, Depends(get_current_superuser)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[UserRead]:
    """Activate a user account (superuser only)."""
    user = await auth_service.activate_user(user_id)
    return ApiResponse(message="User activated successfully", data=user)


@router.put("/{user_id}/deactivate", response_model=ApiResponse[UserRead])
async def deactivate_user(
    user_id: uuid.UUID,
    _: Annotated[User, Depends(get_current_superuser)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[UserRead]:
    """Deactivate a user account (superuser only)."""
    user = await auth_service.deactivate_user(user_id)
    return ApiResponse(message="User deactivated successfully", data=user)


# Mounted without a prefix so the route is /me
me_router = APIRouter()


@me_router.get("/me", response_model=ApiResponse[UserRead])
async def read_me(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> ApiResponse[UserRead]:
    """Get the current user."""
    return ApiResponse(data=await user_service.get_profile(claims.user_id))
