"""CRUD operations for Post model."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.post import Post


async def get_post(db: AsyncSession, post_id: uuid.UUID) -> Post | None:
    """
    Get a post with its author loaded.

    Args:
        db: Database session
        post_id: Post UUID

    Returns:
        Post object or None if not found
    """
    result = await db.execute(
        select(Post)
        .options(selectinload(Post.author))
        .where(Post.id == post_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_posts(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 10,
    author_id: uuid.UUID | None = None,
    published_only: bool = False,
) -> tuple[list[Post], int]:
    """
    List posts, newest first.

    Args:
        db: Database session
        skip: Number of posts to skip
        limit: Maximum number of posts to return
        author_id: Only posts by this author
        published_only: Only published posts

    Returns:
        Tuple of (page of posts, total matching posts)
    """
    filters = []
    if author_id is not None:
        filters.append(Post.author_id == author_id)
    if published_only:
        filters.append(Post.is_published.is_(True))

    total_result = await db.execute(select(func.count(Post.id)).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Post)
        .options(selectinload(Post.author))
        .where(*filters)
        .order_by(Post.created_at.desc(), Post.id)
        .offset(skip)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def create_post(
    db: AsyncSession,
    author_id: uuid.UUID,
    title: str,
    content: str,
    is_published: bool = False,
) -> Post:
    db_post = Post(
        author_id=author_id,
        title=title,
        content=content,
        is_published=is_published,
    )
    db.add(db_post)
    await db.commit()
    return await get_post(db, db_post.id)  # type: ignore[return-value]


async def update_post(db: AsyncSession, db_post: Post, **fields: object) -> Post:
    """
    Update existing post.

    Args:
        db: Database session
        db_post: Existing post object
        **fields: Column values to set

    Returns:
        Updated post object
    """
    for field, value in fields.items():
        setattr(db_post, field, value)

    db.add(db_post)
    await db.commit()
    return db_post


async def delete_post(db: AsyncSession, db_post: Post) -> None:
    await db.delete(db_post)
    await db.commit()
