"""In-memory implementations of the store contracts for service tests."""

import asyncio
import uuid
from datetime import datetime, timedelta

import app.models  # noqa: F401  (configures mappers before models are instantiated)
from app.core.clock import utcnow
from app.core.errors import InvalidRefreshTokenError
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.stores.base import StoreConflictError, StoreError


class InMemoryUserStore:
    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.fail_with: Exception | None = None

    def _check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        self._check_failure()
        return self.users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        self._check_failure()
        return next((u for u in self.users.values() if u.email == email), None)

    async def get_by_username(self, username: str) -> User | None:
        self._check_failure()
        return next((u for u in self.users.values() if u.username == username), None)

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def exists_by_username(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    async def create(self, username: str, email: str, hashed_password: str) -> User:
        self._check_failure()
        if any(u.email == email or u.username == username for u in self.users.values()):
            raise StoreConflictError("duplicate user")
        now = utcnow()
        user = User(
            id=uuid.uuid4(),
            username=username,
            email=email,
            hashed_password=hashed_password,
            is_active=True,
            is_superuser=False,
            last_login=None,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    async def update(self, user: User, **fields: object) -> User:
        self._check_failure()
        for field, value in fields.items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        return user

    async def set_active(self, user_id: uuid.UUID, is_active: bool) -> User | None:
        user = await self.get_by_id(user_id)
        if user is None:
            return None
        return await self.update(user, is_active=is_active)

    async def touch_last_login(self, user_id: uuid.UUID) -> None:
        self._check_failure()
        self.users[user_id].last_login = utcnow()

    async def delete(self, user_id: uuid.UUID) -> bool:
        self._check_failure()
        return self.users.pop(user_id, None) is not None


class InMemoryRefreshTokenStore:
    """
    Refresh token store guarded by one lock.

    ``rotate`` yields to the event loop while holding the lock so that
    concurrent callers genuinely interleave.
    """

    def __init__(self) -> None:
        self.records: dict[str, RefreshToken] = {}
        self.lock = asyncio.Lock()
        self.fail_with: Exception | None = None

    def _check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _insert(self, token_id: str, token_hash: str, user_id: uuid.UUID, expires_at: datetime) -> RefreshToken:
        if token_id in self.records:
            raise StoreError(f"duplicate token_id {token_id}")
        record = RefreshToken(
            id=uuid.uuid4(),
            token_id=token_id,
            token_hash=token_hash,
            user_id=user_id,
            expires_at=expires_at,
            is_revoked=False,
            created_at=utcnow(),
            revoked_at=None,
        )
        self.records[token_id] = record
        return record

    async def create(
        self,
        token_id: str,
        token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken:
        self._check_failure()
        async with self.lock:
            return self._insert(token_id, token_hash, user_id, expires_at)

    async def get_by_token_id(self, token_id: str) -> RefreshToken | None:
        self._check_failure()
        return self.records.get(token_id)

    async def revoke(self, token_id: str) -> None:
        self._check_failure()
        record = self.records.get(token_id)
        if record is not None and not record.is_revoked:
            record.is_revoked = True
            record.revoked_at = utcnow()

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        self._check_failure()
        revoked = 0
        for record in self.records.values():
            if record.user_id == user_id and not record.is_revoked:
                record.is_revoked = True
                record.revoked_at = utcnow()
                revoked += 1
        return revoked

    async def is_valid(self, token_id: str) -> bool:
        self._check_failure()
        record = self.records.get(token_id)
        return record is not None and not record.is_revoked and record.expires_at > utcnow()

    async def rotate(
        self,
        old_token_id: str,
        new_token_id: str,
        new_token_hash: str,
        user_id: uuid.UUID,
        expires_at: datetime,
    ) -> RefreshToken:
        self._check_failure()
        async with self.lock:
            await asyncio.sleep(0)
            old = self.records.get(old_token_id)
            now = utcnow()
            if old is None or old.is_revoked or old.expires_at <= now or old.user_id != user_id:
                raise InvalidRefreshTokenError()
            new = self._insert(new_token_id, new_token_hash, user_id, expires_at)
            old.is_revoked = True
            old.revoked_at = now
            return new

    async def delete_expired(self, revoked_retention: timedelta = timedelta(days=7)) -> int:
        self._check_failure()
        now = utcnow()
        doomed = [
            token_id
            for token_id, record in self.records.items()
            if record.expires_at < now
            or (record.is_revoked and record.revoked_at is not None and record.revoked_at < now - revoked_retention)
        ]
        for token_id in doomed:
            del self.records[token_id]
        return len(doomed)

    def active_for_user(self, user_id: uuid.UUID) -> list[RefreshToken]:
        now = utcnow()
        return [
            r for r in self.records.values()
            if r.user_id == user_id and not r.is_revoked and r.expires_at > now
        ]
