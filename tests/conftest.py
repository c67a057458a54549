"""Pytest configuration and fixtures for Postboard tests."""

import os

# Settings are read at import time, so the test environment must be in place first
os.environ["APP_ENV"] = "test"
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-access-secret-do-not-use-in-prod")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-do-not-use-in-prod")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_token_codec  # noqa: E402
from app.core.clock import utcnow  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.password_policy import PasswordPolicy  # noqa: E402
from app.core.security import get_password_hash, hash_refresh_token  # noqa: E402
from app.core.tokens import TokenCodec, TokenPair  # noqa: E402
from app.crud import refresh_token as refresh_token_crud  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402

# Use SQLite in-memory database for tests (faster and no setup needed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "Secur3!Pass"
ADMIN_PASSWORD = "Adm1n#Strong"


@pytest.fixture
async def engine():
    """Create async engine for tests with SQLite in-memory database."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,  # StaticPool for in-memory SQLite
        connect_args={"check_same_thread": False},  # Required for SQLite
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after tests
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        # Rollback to clean up any changes (but allows commits during test)
        await session.rollback()


@pytest.fixture
def codec() -> TokenCodec:
    return get_token_codec()


@pytest.fixture
def policy() -> PasswordPolicy:
    return PasswordPolicy()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database session override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    is_superuser: bool = False,
    is_active: bool = True,
) -> User:
    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        is_active=is_active,
        is_superuser=is_superuser,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user for authentication tests."""
    return await _create_user(db_session, "testuser", "test@example.com", TEST_PASSWORD)


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "otheruser", "other@example.com", TEST_PASSWORD)


@pytest.fixture
async def test_superuser(db_session: AsyncSession) -> User:
    """Create a test superuser for admin tests."""
    return await _create_user(
        db_session, "admin", "admin@example.com", ADMIN_PASSWORD, is_superuser=True
    )


async def issue_session(db: AsyncSession, codec: TokenCodec, user: User) -> TokenPair:
    """Issue a token pair and persist its refresh token, as login does."""
    pair = codec.generate_token_pair(user)
    await refresh_token_crud.create_refresh_token(
        db,
        pair.token_id,
        hash_refresh_token(pair.refresh_token),
        user.id,
        utcnow() + codec.refresh_ttl,
    )
    return pair


@pytest.fixture
async def user_session(db_session: AsyncSession, codec: TokenCodec, test_user: User) -> TokenPair:
    return await issue_session(db_session, codec, test_user)


@pytest.fixture
def auth_headers(user_session: TokenPair) -> dict[str, str]:
    return {"Authorization": f"Bearer {user_session.access_token}"}


@pytest.fixture
async def other_auth_headers(
    db_session: AsyncSession, codec: TokenCodec, other_user: User
) -> dict[str, str]:
    pair = await issue_session(db_session, codec, other_user)
    return {"Authorization": f"Bearer {pair.access_token}"}


@pytest.fixture
async def superuser_headers(
    db_session: AsyncSession, codec: TokenCodec, test_superuser: User
) -> dict[str, str]:
    pair = await issue_session(db_session, codec, test_superuser)
    return {"Authorization": f"Bearer {pair.access_token}"}
