"""Tests for the post service against the test database."""

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, NotFoundError
from app.models.user import User
from app.services.post_service import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    PostService,
    normalize_pagination,
)


@pytest.fixture
def service(db_session: AsyncSession) -> PostService:
    return PostService(db_session)


@pytest.mark.parametrize(
    ("page", "per_page", "expected"),
    [
        (1, 10, (1, 10)),
        (3, 25, (3, 25)),
        (0, 10, (DEFAULT_PAGE, 10)),
        (-4, 10, (DEFAULT_PAGE, 10)),
        (2, 0, (2, DEFAULT_PER_PAGE)),
        (2, 101, (2, DEFAULT_PER_PAGE)),
        (2, 100, (2, 100)),
        (None, None, (DEFAULT_PAGE, DEFAULT_PER_PAGE)),
    ],
)
def test_normalize_pagination(page, per_page, expected):
    assert normalize_pagination(page, per_page) == expected


async def test_create_and_get(service: PostService, test_user: User):
    post = await service.create_post(test_user.id, "Hello", "First post")

    fetched = await service.get_post(post.id)
    assert fetched.title == "Hello"
    assert fetched.is_published is False
    assert fetched.author.username == "testuser"


async def test_create_for_unknown_author(service: PostService):
    with pytest.raises(NotFoundError) as exc_info:
        await service.create_post(uuid.uuid4(), "Orphan", "No author")

    assert exc_info.value.message == "User not found"
    _, total, _, _ = await service.list_posts()
    assert total == 0


async def test_get_missing(service: PostService):
    with pytest.raises(NotFoundError):
        await service.get_post(uuid.uuid4())


async def test_update_by_author(service: PostService, test_user: User):
    post = await service.create_post(test_user.id, "Draft", "Body")

    updated = await service.update_post(post.id, test_user.id, title="Final")

    assert updated.title == "Final"
    assert updated.content == "Body"


async def test_update_without_changes_returns_post(service: PostService, test_user: User):
    post = await service.create_post(test_user.id, "Draft", "Body")

    same = await service.update_post(post.id, test_user.id)

    assert same.id == post.id
    assert same.title == "Draft"


async def test_non_author_is_forbidden(service: PostService, test_user: User, other_user: User):
    post = await service.create_post(test_user.id, "Mine", "Hands off")

    with pytest.raises(ForbiddenError):
        await service.update_post(post.id, other_user.id, title="Yours now")
    with pytest.raises(ForbiddenError):
        await service.publish_post(post.id, other_user.id)
    with pytest.raises(ForbiddenError):
        await service.delete_post(post.id, other_user.id)

    assert (await service.get_post(post.id)).title == "Mine"


async def test_publish_and_unpublish(service: PostService, test_user: User):
    post = await service.create_post(test_user.id, "News", "Body")

    assert (await service.publish_post(post.id, test_user.id)).is_published is True
    assert (await service.unpublish_post(post.id, test_user.id)).is_published is False


async def test_delete(service: PostService, test_user: User):
    post = await service.create_post(test_user.id, "Temp", "Body")
    post_id = post.id

    await service.delete_post(post_id, test_user.id)

    with pytest.raises(NotFoundError):
        await service.get_post(post_id)


async def test_list_pagination(service: PostService, test_user: User, other_user: User):
    for i in range(3):
        await service.create_post(test_user.id, f"Mine {i}", "Body", is_published=i != 0)
    await service.create_post(other_user.id, "Theirs", "Body", is_published=True)

    posts, total, page, per_page = await service.list_posts(page=1, per_page=2)
    assert total == 4
    assert len(posts) == 2
    assert (page, per_page) == (1, 2)

    posts, total, _, _ = await service.list_posts(page=3, per_page=2)
    assert total == 4
    assert posts == []

    posts, total, _, _ = await service.list_posts(author_id=test_user.id)
    assert total == 3
    assert all(p.author_id == test_user.id for p in posts)

    posts, total, _, _ = await service.list_posts(published_only=True)
    assert total == 3
    assert all(p.is_published for p in posts)


async def test_list_out_of_range_falls_back(service: PostService, test_user: User):
    await service.create_post(test_user.id, "Only", "Body")

    posts, total, page, per_page = await service.list_posts(page=0, per_page=1000)

    assert (page, per_page) == (DEFAULT_PAGE, DEFAULT_PER_PAGE)
    assert total == 1
    assert len(posts) == 1
