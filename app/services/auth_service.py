"""Registration, login, token refresh and logout."""

import asyncio
import re
import uuid
from functools import lru_cache

import structlog
from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.clock import utcnow
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidRefreshTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from app.core.password_policy import PasswordPolicy, PolicyViolation
from app.core.security import constant_time_compare, get_password_hash, hash_refresh_token, verify_password
from app.core.tokens import TokenCodec, TokenValidationError
from app.schemas.token import LoginResponse
from app.schemas.user import UserRead
from app.stores.base import RefreshTokenStore, StoreConflictError, StoreError, UserStore

logger = structlog.get_logger(__name__)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,20}$")

_email_adapter = TypeAdapter(EmailStr)

INVALID_CREDENTIALS = "Invalid email or password"


@lru_cache
def _dummy_password_hash() -> str:
    return get_password_hash("postboard-dummy-password")


def _verify_dummy_password(password: str) -> None:
    # Unknown emails pay for one bcrypt check too
    verify_password(password, _dummy_password_hash())


def validate_username(username: str) -> None:
    if not USERNAME_RE.fullmatch(username):
        raise ValidationFailedError(
            "Username must be 3-20 characters of letters, digits or underscores",
            details=[{"field": "username", "message": "invalid username"}],
        )


def validate_email(email: str) -> None:
    try:
        _email_adapter.validate_python(email)
    except ValidationError as exc:
        raise ValidationFailedError(
            "Invalid email address",
            details=[{"field": "email", "message": "invalid email address"}],
        ) from exc


class AuthService:
    """
    Orchestrates the authentication and session lifecycle.

    Every outcome is one of the application errors in app.core.errors;
    store and token codec failures never leave this class unmapped.
    """

    def __init__(
        self,
        users: UserStore,
        refresh_tokens: RefreshTokenStore,
        codec: TokenCodec,
        policy: PasswordPolicy,
    ) -> None:
        self.users = users
        self.refresh_tokens = refresh_tokens
        self.codec = codec
        self.policy = policy

    async def register(self, username: str, email: str, password: str) -> UserRead:
        """
        Create a new active account.

        Args:
            username: 3-20 characters of [A-Za-z0-9_]
            email: RFC email address
            password: Plain text password, checked against the policy

        Returns:
            The created user, without any password field

        Raises:
            ValidationFailedError: Malformed username/email or policy violation
            ConflictError: Email or username already in use
            InternalError: Store failure
        """
        validate_username(username)
        validate_email(email)
        try:
            self.policy.validate(password)
        except PolicyViolation as exc:
            raise ValidationFailedError(
                exc.message,
                details=[{"field": "password", "reason": exc.reason.value, "message": exc.message}],
            ) from exc

        try:
            if await self.users.exists_by_email(email):
                raise ConflictError("Email already registered")
            if await self.users.exists_by_username(username):
                raise ConflictError("Username already taken")

            hashed_password = await asyncio.to_thread(get_password_hash, password)
            user = await self.users.create(username, email, hashed_password)
        except StoreConflictError as exc:
            # Lost a race with a concurrent registration
            raise ConflictError("Email or username already taken") from exc
        except StoreError as exc:
            raise InternalError("Failed to create user") from exc

        logger.info("auth.user_registered", user_id=str(user.id), username=user.username)
        return UserRead.model_validate(user)

    async def authenticate(self, email: str, password: str) -> LoginResponse:
        """
        Verify credentials and open a new session.

        Args:
            email: Account email
            password: Plain text password

        Returns:
            Token pair plus the user

        Raises:
            UnauthorizedError: Unknown email or wrong password
            ForbiddenError: Account is deactivated
            InternalError: Store failure
        """
        try:
            user = await self.users.get_by_email(email)
        except StoreError as exc:
            raise InternalError("Failed to load user") from exc

        if user is None:
            await asyncio.to_thread(_verify_dummy_password, password)
            logger.info("auth.login_failed", reason="unknown_email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(verify_password, password, user.hashed_password):
            logger.info("auth.login_failed", reason="bad_password", user_id=str(user.id))
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_active:
            logger.info("auth.login_failed", reason="deactivated", user_id=str(user.id))
            raise ForbiddenError("Account is deactivated")

        pair = self.codec.generate_token_pair(user)
        try:
            # last_login first: a failure here must not leave a live session behind
            await self.users.touch_last_login(user.id)
            await self.refresh_tokens.create(
                pair.token_id,
                hash_refresh_token(pair.refresh_token),
                user.id,
                utcnow() + self.codec.refresh_ttl,
            )
        except StoreError as exc:
            raise InternalError("Failed to create session") from exc

        logger.info("auth.login_succeeded", user_id=str(user.id), token_id=pair.token_id)
        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
            user=UserRead.model_validate(user),
        )

    async def refresh(self, refresh_token: str) -> LoginResponse:
        """
        Exchange a refresh token for a new pair, revoking the presented one.

        Every rejection is the same generic InvalidRefreshTokenError so the
        caller cannot tell an expired token from a revoked or forged one.

        Raises:
            InvalidRefreshTokenError: Token rejected for any reason
            InternalError: Store failure
        """
        try:
            claims = self.codec.validate_refresh_token(refresh_token)
        except TokenValidationError as exc:
            logger.info("auth.refresh_rejected", reason=exc.kind.value)
            raise InvalidRefreshTokenError() from exc

        try:
            record = await self.refresh_tokens.get_by_token_id(claims.token_id)
            if record is None or not constant_time_compare(
                record.token_hash, hash_refresh_token(refresh_token)
            ):
                logger.info("auth.refresh_rejected", reason="unknown_token", token_id=claims.token_id)
                raise InvalidRefreshTokenError()

            user = await self.users.get_by_id(claims.user_id)
            if user is None or not user.is_active:
                logger.info("auth.refresh_rejected", reason="inactive_user", user_id=str(claims.user_id))
                raise InvalidRefreshTokenError()

            pair = self.codec.generate_token_pair(user)
            await self.refresh_tokens.rotate(
                claims.token_id,
                pair.token_id,
                hash_refresh_token(pair.refresh_token),
                user.id,
                utcnow() + self.codec.refresh_ttl,
            )
        except StoreError as exc:
            raise InternalError("Failed to refresh session") from exc

        logger.info(
            "auth.token_refreshed",
            user_id=str(user.id),
            old_token_id=claims.token_id,
            token_id=pair.token_id,
        )
        return LoginResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_in=pair.expires_in,
            user=UserRead.model_validate(user),
        )

    async def logout(self, user_id: uuid.UUID, token_id: str) -> None:
        """Revoke the session identified by token_id. Idempotent."""
        try:
            await self.refresh_tokens.revoke(token_id)
        except StoreError as exc:
            raise InternalError("Failed to log out") from exc
        logger.info("auth.logged_out", user_id=str(user_id), token_id=token_id)

    async def logout_all(self, user_id: uuid.UUID) -> int:
        """Revoke every active session of a user and return how many were revoked."""
        try:
            revoked = await self.refresh_tokens.revoke_all_for_user(user_id)
        except StoreError as exc:
            raise InternalError("Failed to log out sessions") from exc
        logger.info("auth.logged_out_all", user_id=str(user_id), revoked_sessions=revoked)
        return revoked

    async def activate_user(self, user_id: uuid.UUID) -> UserRead:
        return await self._set_active(user_id, True)

    async def deactivate_user(self, user_id: uuid.UUID) -> UserRead:
        # Issued tokens stay valid until expiry; refresh is refused for inactive users
        return await self._set_active(user_id, False)

    async def _set_active(self, user_id: uuid.UUID, is_active: bool) -> UserRead:
        try:
            user = await self.users.set_active(user_id, is_active)
        except StoreError as exc:
            raise InternalError("Failed to change user status") from exc
        if user is None:
            raise NotFoundError("User not found")

        logger.info(
            "auth.user_activated" if is_active else "auth.user_deactivated",
            user_id=str(user_id),
        )
        return UserRead.model_validate(user)
