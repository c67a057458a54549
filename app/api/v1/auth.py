"""Authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.deps import get_auth_service, get_current_claims, get_password_policy
from app.core.password_policy import PasswordPolicy, PolicyViolation, password_strength
from app.core.rate_limit import auth_login_limit, auth_refresh_limit, auth_register_limit
from app.core.tokens import TokenClaims
from app.schemas.common import ApiResponse
from app.schemas.token import LoginResponse, LogoutAllResponse, RefreshTokenRequest
from app.schemas.user import (
    PasswordStrengthRequest,
    PasswordStrengthResponse,
    UserCreate,
    UserLogin,
    UserRead,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=ApiResponse[UserRead],
    status_code=status.HTTP_201_CREATED,
)
@auth_register_limit
async def register(
    request: Request,
    response: Response,
    user_in: UserCreate,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[UserRead]:
    """
    Register a new user.

    Args:
        user_in: Username, email and password

    Returns:
        Created user

    Raises:
        ValidationFailedError: Bad username/email or password policy violation
        ConflictError: Email or username already registered
    """
    user = await auth_service.register(user_in.username, user_in.email, user_in.password)
    return ApiResponse(message="User registered successfully", data=user)


@router.post("/login", response_model=ApiResponse[LoginResponse])
@auth_login_limit
async def login(
    request: Request,
    response: Response,
    credentials: UserLogin,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[LoginResponse]:
    """
    Log in with email and password.

    Returns:
        Access and refresh tokens plus the user

    Raises:
        UnauthorizedError: Unknown email or wrong password
        ForbiddenError: Account is deactivated
    """
    result = await auth_service.authenticate(credentials.email, credentials.password)
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh", response_model=ApiResponse[LoginResponse])
@auth_refresh_limit
async def refresh_token(
    request: Request,
    response: Response,
    refresh_request: RefreshTokenRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[LoginResponse]:
    """
    Rotate a refresh token: the presented token is revoked and a new pair issued.

    Raises:
        InvalidRefreshTokenError: Token invalid, expired, revoked or reused
    """
    result = await auth_service.refresh(refresh_request.refresh_token)
    return ApiResponse(message="Token refreshed successfully", data=result)


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[None]:
    """Revoke the session of the presented access token."""
    await auth_service.logout(claims.user_id, claims.token_id)
    return ApiResponse(message="Logged out successfully")


@router.post("/logout-all", response_model=ApiResponse[LogoutAllResponse])
async def logout_all(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[LogoutAllResponse]:
    """Revoke every session of the current user."""
    revoked = await auth_service.logout_all(claims.user_id)
    return ApiResponse(
        message="Logged out from all sessions",
        data=LogoutAllResponse(revoked_sessions=revoked),
    )


@router.post("/password-strength", response_model=ApiResponse[PasswordStrengthResponse])
async def check_password_strength(
    body: PasswordStrengthRequest,
    policy: Annotated[PasswordPolicy, Depends(get_password_policy)],
) -> ApiResponse[PasswordStrengthResponse]:
    """Score a candidate password and report whether the policy accepts it."""
    result = PasswordStrengthResponse(score=password_strength(body.password), valid=True)
    try:
        policy.validate(body.password)
    except PolicyViolation as exc:
        result.valid = False
        result.reason = exc.reason.value
        result.message = exc.message
    return ApiResponse(data=result)
