"""API dependencies: database session, services and authentication."""

from functools import lru_cache
from typing import Annotated

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.password_policy import PasswordPolicy
from app.core.tokens import TokenClaims, TokenCodec, TokenValidationError
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.post_service import PostService
from app.services.user_service import UserService
from app.stores.sqlalchemy import SQLAlchemyRefreshTokenStore, SQLAlchemyUserStore

__all__ = [
    "get_db",
    "get_token_codec",
    "get_password_policy",
    "get_auth_service",
    "get_user_service",
    "get_post_service",
    "get_current_claims",
    "get_current_user",
    "get_current_superuser",
]

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Access token")


@lru_cache
def get_token_codec() -> TokenCodec:
    return TokenCodec.from_settings(settings)


@lru_cache
def get_password_policy() -> PasswordPolicy:
    return PasswordPolicy.from_settings(settings)


def get_auth_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    policy: Annotated[PasswordPolicy, Depends(get_password_policy)],
) -> AuthService:
    return AuthService(
        users=SQLAlchemyUserStore(db),
        refresh_tokens=SQLAlchemyRefreshTokenStore(db),
        codec=codec,
        policy=policy,
    )


def get_user_service(db: Annotated[AsyncSession, Depends(get_db)]) -> UserService:
    return UserService(SQLAlchemyUserStore(db))


def get_post_service(db: Annotated[AsyncSession, Depends(get_db)]) -> PostService:
    return PostService(db)


async def get_current_claims(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
) -> TokenClaims:
    """
    Validate the bearer access token.

    Raises:
        UnauthorizedError: Missing, malformed, expired or otherwise invalid token
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Not authenticated")

    try:
        claims = codec.validate_access_token(credentials.credentials)
    except TokenValidationError as exc:
        logger.info("auth.access_token_rejected", reason=exc.kind.value, path=request.url.path)
        raise UnauthorizedError("Could not validate credentials") from exc

    # Rate limiter keys authenticated callers by user id
    request.state.user_id = str(claims.user_id)
    return claims


async def get_current_user(
    claims: Annotated[TokenClaims, Depends(get_current_claims)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Load the user behind the access token.

    Deactivated users are not rejected here: their access tokens stay
    usable until expiry.
    """
    user = await SQLAlchemyUserStore(db).get_by_id(claims.user_id)
    if user is None:
        raise UnauthorizedError("User no longer exists")
    return user


async def get_current_superuser(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_superuser:
        raise ForbiddenError("Not enough privileges")
    return current_user
