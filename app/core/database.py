"""Database engine, session factory and declarative base."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all models."""


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"echo": settings.DB_ECHO}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_pre_ping"] = True
    return kwargs


engine = create_async_engine(str(settings.DATABASE_URL), **_engine_kwargs(str(settings.DATABASE_URL)))
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.

    Services commit explicitly; anything left open is rolled back on close.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create tables for every registered model."""
    import app.models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
