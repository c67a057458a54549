"""Celery background tasks."""

import asyncio
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.stores.base import StoreError
from app.stores.sqlalchemy import SQLAlchemyRefreshTokenStore
from app.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

# Workers use their own engine, separate from the API process
engine = create_async_engine(str(settings.DATABASE_URL), echo=False, pool_pre_ping=True)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _get_event_loop() -> asyncio.AbstractEventLoop:
    # Get or create event loop for Celery solo pool
    try:
        loop = asyncio.get_event_loop()
        if loop.is_closed():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop


async def purge_refresh_tokens(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, Any]:
    """
    Delete expired refresh tokens and revoked ones past retention.

    Args:
        session_factory: Session factory to open the sweep's own session

    Returns:
        Dict with cleanup results
    """
    async with session_factory() as db:
        store = SQLAlchemyRefreshTokenStore(db)
        try:
            deleted = await store.delete_expired()
        except StoreError as e:
            logger.error("tokens.cleanup_failed", error=str(e.__cause__ or e))
            return {"status": "error", "error": str(e)}

    logger.info(
        "tokens.cleanup_completed",
        deleted_count=deleted,
        revoked_retention_days=settings.REFRESH_TOKEN_REVOKED_RETENTION_DAYS,
    )
    return {"status": "success", "deleted_count": deleted}


@celery_app.task(name="app.workers.tasks.cleanup_expired_refresh_tokens")
def cleanup_expired_refresh_tokens() -> dict[str, Any]:
    """
    Periodic refresh token sweep.

    Runs via Celery Beat every REFRESH_TOKEN_CLEANUP_MINUTES. A failed
    sweep is logged and retried on the next tick.

    Returns:
        Dict with cleanup results
    """
    loop = _get_event_loop()
    return loop.run_until_complete(purge_refresh_tokens(AsyncSessionLocal))
