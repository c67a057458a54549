"""Post management."""

import uuid

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InternalError, NotFoundError
from app.crud import post as post_crud
from app.crud import user as user_crud
from app.models.post import Post

logger = structlog.get_logger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def normalize_pagination(page: int | None, per_page: int | None) -> tuple[int, int]:
    """Clamp out-of-range pagination to the defaults instead of rejecting it."""
    if page is None or page < 1:
        page = DEFAULT_PAGE
    if per_page is None or per_page < 1 or per_page > MAX_PER_PAGE:
        per_page = DEFAULT_PER_PAGE
    return page, per_page


class PostService:
    """
    CRUD over posts. Only the author may modify or delete a post.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_post(
        self,
        author_id: uuid.UUID,
        title: str,
        content: str,
        is_published: bool = False,
    ) -> Post:
        """
        Create a post for an existing author.

        Raises:
            NotFoundError: The author account no longer exists
            InternalError: Database failure
        """
        try:
            author = await user_crud.get_user_by_id(self.db, author_id)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to load author") from exc
        if author is None:
            raise NotFoundError("User not found")

        try:
            post = await post_crud.create_post(self.db, author_id, title, content, is_published)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise InternalError("Failed to create post") from exc
        logger.info("posts.created", post_id=str(post.id), author_id=str(author_id))
        return post

    async def get_post(self, post_id: uuid.UUID) -> Post:
        try:
            post = await post_crud.get_post(self.db, post_id)
        except SQLAlchemyError as exc:
            raise InternalError("Failed to load post") from exc
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def list_posts(
        self,
        page: int | None = DEFAULT_PAGE,
        per_page: int | None = DEFAULT_PER_PAGE,
        author_id: uuid.UUID | None = None,
        published_only: bool = False,
    ) -> tuple[list[Post], int, int, int]:
        """
        List posts, newest first.

        Returns:
            Tuple of (posts, total, effective page, effective per_page)
        """
        page, per_page = normalize_pagination(page, per_page)
        try:
            posts, total = await post_crud.list_posts(
                self.db,
                skip=(page - 1) * per_page,
                limit=per_page,
                author_id=author_id,
                published_only=published_only,
            )
        except SQLAlchemyError as exc:
            raise InternalError("Failed to list posts") from exc
        return posts, total, page, per_page

    async def update_post(
        self,
        post_id: uuid.UUID,
        actor_id: uuid.UUID,
        title: str | None = None,
        content: str | None = None,
        is_published: bool | None = None,
    ) -> Post:
        post = await self._get_owned(post_id, actor_id)

        changes: dict[str, object] = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if is_published is not None:
            changes["is_published"] = is_published
        if not changes:
            return post

        post = await self._save(post, changes)
        logger.info("posts.updated", post_id=str(post_id), fields=sorted(changes))
        return post

    async def delete_post(self, post_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        post = await self._get_owned(post_id, actor_id)
        try:
            await post_crud.delete_post(self.db, post)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise InternalError("Failed to delete post") from exc
        logger.info("posts.deleted", post_id=str(post_id), author_id=str(actor_id))

    async def publish_post(self, post_id: uuid.UUID, actor_id: uuid.UUID) -> Post:
        post = await self._get_owned(post_id, actor_id)
        return await self._save(post, {"is_published": True})

    async def unpublish_post(self, post_id: uuid.UUID, actor_id: uuid.UUID) -> Post:
        post = await self._get_owned(post_id, actor_id)
        return await self._save(post, {"is_published": False})

    async def _get_owned(self, post_id: uuid.UUID, actor_id: uuid.UUID) -> Post:
        post = await self.get_post(post_id)
        if post.author_id != actor_id:
            raise ForbiddenError("You can only modify your own posts")
        return post

    async def _save(self, post: Post, changes: dict[str, object]) -> Post:
        try:
            return await post_crud.update_post(self.db, post, **changes)
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise InternalError("Failed to update post") from exc
