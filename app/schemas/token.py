"""Token schemas for authentication."""

from pydantic import BaseModel

from app.schemas.user import UserRead


class Token(BaseModel):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # access token lifetime in seconds


class LoginResponse(Token):
    """Token pair plus the authenticated user."""

    user: UserRead


class RefreshTokenRequest(BaseModel):
    """Request to refresh access token."""

    refresh_token: str


class LogoutAllResponse(BaseModel):
    revoked_sessions: int
