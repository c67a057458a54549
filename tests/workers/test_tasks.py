"""Tests for background tasks."""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import utcnow
from app.core.config import settings
from app.crud import refresh_token as refresh_token_crud
from app.models.user import User
from app.stores.base import StoreError
from app.workers import tasks
from app.workers.celery_app import celery_app


async def _add_token(db: AsyncSession, user: User, token_id: str, expires_in: timedelta, revoked_ago=None):
    record = await refresh_token_crud.create_refresh_token(
        db, token_id, "0" * 64, user.id, utcnow() + expires_in
    )
    if revoked_ago is not None:
        record.is_revoked = True
        record.revoked_at = utcnow() - revoked_ago
        await db.commit()
    return record


async def test_purge_refresh_tokens(
    session_factory: async_sessionmaker[AsyncSession], db_session: AsyncSession, test_user: User
):
    await _add_token(db_session, test_user, "expired", timedelta(days=-1))
    await _add_token(db_session, test_user, "revoked-old", timedelta(days=5), revoked_ago=timedelta(days=30))
    await _add_token(db_session, test_user, "revoked-recent", timedelta(days=5), revoked_ago=timedelta(hours=1))
    await _add_token(db_session, test_user, "active", timedelta(days=5))

    result = await tasks.purge_refresh_tokens(session_factory)

    assert result == {"status": "success", "deleted_count": 2}
    db_session.expire_all()
    assert await refresh_token_crud.get_by_token_id(db_session, "expired") is None
    assert await refresh_token_crud.get_by_token_id(db_session, "revoked-old") is None
    assert await refresh_token_crud.get_by_token_id(db_session, "revoked-recent") is not None
    assert await refresh_token_crud.get_by_token_id(db_session, "active") is not None


async def test_purge_with_nothing_to_delete(session_factory: async_sessionmaker[AsyncSession]):
    result = await tasks.purge_refresh_tokens(session_factory)

    assert result == {"status": "success", "deleted_count": 0}


async def test_purge_failure_is_reported(
    session_factory: async_sessionmaker[AsyncSession], monkeypatch: pytest.MonkeyPatch
):
    async def failing_delete(self):
        raise StoreError("Failed to delete expired refresh tokens")

    monkeypatch.setattr(tasks.SQLAlchemyRefreshTokenStore, "delete_expired", failing_delete)

    result = await tasks.purge_refresh_tokens(session_factory)

    assert result["status"] == "error"
    assert "Failed to delete" in result["error"]


def test_cleanup_is_scheduled():
    entry = celery_app.conf.beat_schedule["cleanup-expired-refresh-tokens"]

    assert entry["task"] == tasks.cleanup_expired_refresh_tokens.name
    assert entry["schedule"] == timedelta(minutes=settings.REFRESH_TOKEN_CLEANUP_MINUTES)
