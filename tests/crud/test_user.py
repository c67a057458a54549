"""Tests for user CRUD operations."""

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_password_hash, verify_password
from app.crud import post as post_crud
from app.crud import refresh_token as refresh_token_crud
from app.crud import user as user_crud
from app.models.user import User


class TestUserCRUD:
    """Test user CRUD operations."""

    async def test_create_user(self, db_session: AsyncSession):
        """Test creating a new user."""
        user = await user_crud.create_user(
            db_session, "newuser", "newuser@example.com", get_password_hash("Secur3!Pass")
        )

        assert isinstance(user.id, uuid.UUID)
        assert user.username == "newuser"
        assert user.email == "newuser@example.com"
        assert user.is_active is True
        assert user.is_superuser is False
        assert user.last_login is None
        assert user.created_at is not None
        assert verify_password("Secur3!Pass", user.hashed_password)

    async def test_create_user_duplicate_email(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(IntegrityError):
            await user_crud.create_user(db_session, "someoneelse", test_user.email, "x")
        await db_session.rollback()

    async def test_create_user_duplicate_username(self, db_session: AsyncSession, test_user: User):
        with pytest.raises(IntegrityError):
            await user_crud.create_user(db_session, test_user.username, "fresh@example.com", "x")
        await db_session.rollback()

    async def test_get_user_by_id(self, db_session: AsyncSession, test_user: User):
        """Test retrieving user by ID."""
        user = await user_crud.get_user_by_id(db_session, test_user.id)

        assert user is not None
        assert user.id == test_user.id

    async def test_get_user_by_id_not_found(self, db_session: AsyncSession):
        assert await user_crud.get_user_by_id(db_session, uuid.uuid4()) is None

    async def test_get_user_by_email_and_username(self, db_session: AsyncSession, test_user: User):
        assert (await user_crud.get_user_by_email(db_session, "test@example.com")).id == test_user.id
        assert (await user_crud.get_user_by_username(db_session, "testuser")).id == test_user.id
        assert await user_crud.get_user_by_email(db_session, "nobody@example.com") is None

    async def test_exists_checks(self, db_session: AsyncSession, test_user: User):
        assert await user_crud.email_exists(db_session, test_user.email) is True
        assert await user_crud.email_exists(db_session, "nobody@example.com") is False
        assert await user_crud.username_exists(db_session, test_user.username) is True
        assert await user_crud.username_exists(db_session, "nobody") is False

    async def test_update_user(self, db_session: AsyncSession, test_user: User):
        """Test updating user fields."""
        updated = await user_crud.update_user(db_session, test_user, username="renamed")

        assert updated.username == "renamed"
        assert updated.email == test_user.email

    async def test_set_user_active(self, db_session: AsyncSession, test_user: User):
        user = await user_crud.set_user_active(db_session, test_user.id, False)

        assert user is not None
        assert user.is_active is False
        assert await user_crud.set_user_active(db_session, uuid.uuid4(), True) is None

    async def test_update_last_login(self, db_session: AsyncSession, test_user: User):
        await user_crud.update_last_login(db_session, test_user.id)

        user = await user_crud.get_user_by_id(db_session, test_user.id)
        assert user.last_login is not None

    async def test_delete_user_removes_posts_and_sessions(
        self, db_session: AsyncSession, test_user: User
    ):
        """Test that deleting a user also deletes what they own."""
        post = await post_crud.create_post(db_session, test_user.id, "Title", "Body")
        await refresh_token_crud.create_refresh_token(
            db_session, "f" * 32, "0" * 64, test_user.id, test_user.created_at
        )

        assert await user_crud.delete_user(db_session, test_user.id) is True

        db_session.expunge_all()
        assert await user_crud.get_user_by_id(db_session, test_user.id) is None
        assert await post_crud.get_post(db_session, post.id) is None
        assert await refresh_token_crud.get_by_token_id(db_session, "f" * 32) is None

    async def test_delete_unknown_user(self, db_session: AsyncSession):
        assert await user_crud.delete_user(db_session, uuid.uuid4()) is False
