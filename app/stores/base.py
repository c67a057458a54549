"""Persistence contracts consumed by the services."""

import uuid
from datetime import datetime
from typing import Protocol

from app.models.refresh_token import RefreshToken
from app.models.user import User


class StoreError(Exception):
    """A persistence operation failed. Never shown to API callers verbatim."""


class StoreConflictError(StoreError):
    """A uniqueness constraint rejected the write."""


class UserStore(Protocol):
    async def get_by_id(self, user_id: uuid.UUID) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def get_by_username(self, username: str) -> User | None: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def exists_by_username(self, username: str) -> bool: ...

    async def create(self, username: str, email: str, hashed_password: str) -> User: ...

    async def update(self, user: User, **fields: object) -> User: ...

    async def set_active(self, user_id: uuid.UUID, is_active: bool) -> User | None: ...

    async def touch_last_login(self, user_id: uuid.UUID) -> None: ...

    async def delete(self, user_id: uuid.UUID) -> bool: ...


class RefreshTokenStore(Protocol):
    """
    Server-side refresh token sessions.

    ``rotate`` is the only operation that must be atomic across concurrent
    callers: of two rotations presenting the same old token_id, exactly
    one succeeds.
    """

    async def create(
        self,
        token_id: str,
        token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken: ...

    async def get_by_token_id(self, token_id: str) -> RefreshToken | None: ...

    async def revoke(self, token_id: str) -> None: ...

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int: ...

    async def is_valid(self, token_id: str) -> bool: ...

    async def rotate(
        self,
        old_token_id: str,
        new_token_id: str,
        new_token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken: ...

    async def delete_expired(self) -> int: ...
