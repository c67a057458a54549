"""CRUD operations for refresh token sessions."""

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy import delete, exists, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import InvalidRefreshTokenError
from app.models.refresh_token import RefreshToken

logger = structlog.get_logger(__name__)


async def create_refresh_token(
    db: AsyncSession,
    token_id: str,
    token_hash: str,
    user_id: uuid.UUID,
    expires_at: datetime,
) -> RefreshToken:
    """
    Persist a newly issued refresh token.

    Args:
        db: Database session
        token_id: Session identifier shared with the access token
        token_hash: SHA-256 hex digest of the signed refresh token
        user_id: Owner of the session
        expires_at: Expiry of the refresh token (naive UTC)

    Returns:
        Created record

    Raises:
        IntegrityError: If token_id already exists
    """
    record = RefreshToken(
        token_id=token_id,
        token_hash=token_hash,
        user_id=user_id,
        expires_at=expires_at,
        is_revoked=False,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def get_by_token_id(db: AsyncSession, token_id: str) -> RefreshToken | None:
    result = await db.execute(select(RefreshToken).where(RefreshToken.token_id == token_id))
    return result.scalar_one_or_none()


async def revoke(db: AsyncSession, token_id: str) -> None:
    """
    Revoke a refresh token. Idempotent: revoked_at keeps its first value
    and unknown token ids are ignored.
    """
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.token_id == token_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=utcnow())
    )
    await db.commit()


async def revoke_all_for_user(db: AsyncSession, user_id: uuid.UUID) -> int:
    """
    Revoke every active refresh token of a user.

    Returns:
        Number of sessions revoked
    """
    result = await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .values(is_revoked=True, revoked_at=utcnow())
    )
    await db.commit()
    return result.rowcount or 0


async def is_valid(db: AsyncSession, token_id: str) -> bool:
    result = await db.execute(
        select(
            exists().where(
                RefreshToken.token_id == token_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > utcnow(),
            )
        )
    )
    return bool(result.scalar())


async def rotate(
    db: AsyncSession,
    old_token_id: str,
    new_token_id: str,
    new_token_hash: str,
    user_id: uuid.UUID,
    expires_at: datetime,
) -> RefreshToken:
    """
    Atomically replace an active refresh token with a new one.

    The old row is locked with SELECT ... FOR UPDATE so that of two
    concurrent rotations of the same token exactly one commits; the other
    sees the row already revoked once the lock is released.

    Args:
        db: Database session
        old_token_id: token_id of the presented refresh token
        new_token_id: token_id of the newly issued pair
        new_token_hash: SHA-256 digest of the new refresh token
        user_id: Owner of both sessions
        expires_at: Expiry of the new refresh token

    Returns:
        The new record

    Raises:
        InvalidRefreshTokenError: If the old token is unknown, revoked,
            expired or owned by another user
        SQLAlchemyError: On any database failure (transaction rolled back)
    """
    try:
        result = await db.execute(
            select(RefreshToken)
            .where(RefreshToken.token_id == old_token_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        old = result.scalar_one_or_none()

        now = utcnow()
        if old is None or old.is_revoked or old.expires_at <= now or old.user_id != user_id:
            await db.rollback()
            raise InvalidRefreshTokenError()

        new = RefreshToken(
            token_id=new_token_id,
            token_hash=new_token_hash,
            user_id=user_id,
            expires_at=expires_at,
            is_revoked=False,
        )
        db.add(new)
        old.is_revoked = True
        old.revoked_at = now
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(new)
    return new


async def delete_expired(db: AsyncSession, revoked_retention_days: int | None = None) -> int:
    """
    Delete expired tokens and revoked tokens past the retention window.

    Args:
        db: Database session
        revoked_retention_days: Days revoked rows are kept, defaults to
            REFRESH_TOKEN_REVOKED_RETENTION_DAYS

    Returns:
        Number of rows deleted
    """
    if revoked_retention_days is None:
        revoked_retention_days = settings.REFRESH_TOKEN_REVOKED_RETENTION_DAYS

    now = utcnow()
    cutoff = now - timedelta(days=revoked_retention_days)
    result = await db.execute(
        delete(RefreshToken).where(
            or_(
                RefreshToken.expires_at < now,
                RefreshToken.is_revoked.is_(True) & (RefreshToken.revoked_at < cutoff),
            )
        )
    )
    await db.commit()
    deleted = result.rowcount or 0
    logger.debug("tokens.expired_deleted", deleted=deleted, revoked_retention_days=revoked_retention_days)
    return deleted
