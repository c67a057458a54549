"""CRUD operations for User model."""

import uuid

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import utcnow
from app.models.post import Post
from app.models.refresh_token import RefreshToken
from app.models.user import User


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    """
    Get user by ID.

    Args:
        db: Database session
        user_id: User UUID

    Returns:
        User object or None if not found
    """
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """
    Get user by email address.

    Args:
        db: Database session
        email: User email

    Returns:
        User object or None if not found
    """
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """
    Get user by username.

    Args:
        db: Database session
        username: Username

    Returns:
        User object or None if not found
    """
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def email_exists(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(exists().where(User.email == email)))
    return bool(result.scalar())


async def username_exists(db: AsyncSession, username: str) -> bool:
    result = await db.execute(select(exists().where(User.username == username)))
    return bool(result.scalar())


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    hashed_password: str,
) -> User:
    """
    Create new active user.

    Args:
        db: Database session
        username: Unique username
        email: Unique email address
        hashed_password: bcrypt hash of the password

    Returns:
        Created user object

    Raises:
        IntegrityError: If username or email is already taken
    """
    db_user = User(
        username=username,
        email=email,
        hashed_password=hashed_password,
        is_active=True,
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user


async def update_user(db: AsyncSession, db_user: User, **fields: object) -> User:
    """
    Update existing user.

    Args:
        db: Database session
        db_user: Existing user object
        **fields: Column values to set

    Returns:
        Updated user object
    """
    for field, value in fields.items():
        setattr(db_user, field, value)

    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user


async def set_user_active(db: AsyncSession, user_id: uuid.UUID, is_active: bool) -> User | None:
    """
    Activate or deactivate a user.

    Args:
        db: Database session
        user_id: User UUID
        is_active: New activation state

    Returns:
        Updated user or None if not found
    """
    db_user = await get_user_by_id(db, user_id)
    if db_user is None:
        return None
    return await update_user(db, db_user, is_active=is_active)


async def update_last_login(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(update(User).where(User.id == user_id).values(last_login=utcnow()))
    await db.commit()


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> bool:
    """
    Delete a user together with their posts and refresh tokens.

    Args:
        db: Database session
        user_id: User UUID

    Returns:
        True if a user was deleted, False if not found
    """
    await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
    await db.execute(delete(Post).where(Post.author_id == user_id))
    result = await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    return result.rowcount > 0
