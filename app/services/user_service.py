"""Profile management for the authenticated user."""

import uuid

import structlog

from app.core.errors import ConflictError, InternalError, NotFoundError
from app.schemas.user import UserRead
from app.services.auth_service import validate_email, validate_username
from app.stores.base import StoreConflictError, StoreError, UserStore

logger = structlog.get_logger(__name__)


class UserService:
    def __init__(self, users: UserStore) -> None:
        self.users = users

    async def get_profile(self, user_id: uuid.UUID) -> UserRead:
        try:
            user = await self.users.get_by_id(user_id)
        except StoreError as exc:
            raise InternalError("Failed to load profile") from exc
        if user is None:
            raise NotFoundError("User not found")
        return UserRead.model_validate(user)

    async def update_profile(
        self,
        user_id: uuid.UUID,
        username: str | None = None,
        email: str | None = None,
    ) -> UserRead:
        """
        Change username and/or email.

        Args:
            user_id: Profile owner
            username: New username, unchanged if None
            email: New email, unchanged if None

        Returns:
            Updated profile

        Raises:
            ValidationFailedError: Malformed username or email
            ConflictError: Username or email belongs to another user
            NotFoundError: Unknown user
        """
        if username is not None:
            validate_username(username)
        if email is not None:
            validate_email(email)

        try:
            user = await self.users.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found")

            changes: dict[str, object] = {}
            if username is not None and username != user.username:
                if await self.users.exists_by_username(username):
                    raise ConflictError("Username already taken")
                changes["username"] = username
            if email is not None and email != user.email:
                if await self.users.exists_by_email(email):
                    raise ConflictError("Email already registered")
                changes["email"] = email

            if changes:
                user = await self.users.update(user, **changes)
        except StoreConflictError as exc:
            raise ConflictError("Username or email already taken") from exc
        except StoreError as exc:
            raise InternalError("Failed to update profile") from exc

        if changes:
            logger.info("users.profile_updated", user_id=str(user_id), fields=sorted(changes))
        return UserRead.model_validate(user)

    async def delete_account(self, user_id: uuid.UUID) -> None:
        try:
            deleted = await self.users.delete(user_id)
        except StoreError as exc:
            raise InternalError("Failed to delete account") from exc
        if not deleted:
            raise NotFoundError("User not found")
        logger.info("users.account_deleted", user_id=str(user_id))
