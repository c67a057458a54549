"""SQLAlchemy-backed implementations of the store contracts."""

import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import refresh_token as refresh_token_crud
from app.crud import user as user_crud
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.stores.base import StoreConflictError, StoreError


class SQLAlchemyUserStore:
    """UserStore over one request-scoped AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        try:
            return await user_crud.get_user_by_id(self.db, user_id)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load user") from exc

    async def get_by_email(self, email: str) -> User | None:
        try:
            return await user_crud.get_user_by_email(self.db, email)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load user by email") from exc

    async def get_by_username(self, username: str) -> User | None:
        try:
            return await user_crud.get_user_by_username(self.db, username)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load user by username") from exc

    async def exists_by_email(self, email: str) -> bool:
        try:
            return await user_crud.email_exists(self.db, email)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to check email") from exc

    async def exists_by_username(self, username: str) -> bool:
        try:
            return await user_crud.username_exists(self.db, username)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to check username") from exc

    async def create(self, username: str, email: str, hashed_password: str) -> User:
        try:
            return await user_crud.create_user(self.db, username, email, hashed_password)
        except IntegrityError as exc:
            await self.db.rollback()
            raise StoreConflictError("User already exists") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to create user") from exc

    async def update(self, user: User, **fields: object) -> User:
        try:
            return await user_crud.update_user(self.db, user, **fields)
        except IntegrityError as exc:
            await self.db.rollback()
            raise StoreConflictError("Username or email already in use") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to update user") from exc

    async def set_active(self, user_id: uuid.UUID, is_active: bool) -> User | None:
        try:
            return await user_crud.set_user_active(self.db, user_id, is_active)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to change user status") from exc

    async def touch_last_login(self, user_id: uuid.UUID) -> None:
        try:
            await user_crud.update_last_login(self.db, user_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to record login") from exc

    async def delete(self, user_id: uuid.UUID) -> bool:
        try:
            return await user_crud.delete_user(self.db, user_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to delete user") from exc


class SQLAlchemyRefreshTokenStore:
    """RefreshTokenStore over one request-scoped AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        token_id: str,
        token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken:
        try:
            return await refresh_token_crud.create_refresh_token(
                self.db, token_id, token_hash, user_id, expires_at
            )
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to create refresh token") from exc

    async def get_by_token_id(self, token_id: str) -> RefreshToken | None:
        try:
            return await refresh_token_crud.get_by_token_id(self.db, token_id)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load refresh token") from exc

    async def revoke(self, token_id: str) -> None:
        try:
            await refresh_token_crud.revoke(self.db, token_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to revoke refresh token") from exc

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        try:
            return await refresh_token_crud.revoke_all_for_user(self.db, user_id)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to revoke refresh tokens") from exc

    async def is_valid(self, token_id: str) -> bool:
        try:
            return await refresh_token_crud.is_valid(self.db, token_id)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to check refresh token") from exc

    async def rotate(
        self,
        old_token_id: str,
        new_token_id: str,
        new_token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken:
        try:
            return await refresh_token_crud.rotate(
                self.db, old_token_id, new_token_id, new_token_hash, user_id, expires_at
            )
        except SQLAlchemyError as exc:
            raise StoreError("Failed to rotate refresh token") from exc

    async def delete_expired(self) -> int:
        try:
            return await refresh_token_crud.delete_expired(self.db)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise StoreError("Failed to delete expired refresh tokens") from exc
