# reservation_engine/core/database.py
from enum import Enum
from typing import Optional, Type

from sqlalchemy import Enum as SAEnum
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from reservation_engine.core.config import settings


class Base(DeclarativeBase):
    pass


def enum_column(enum_cls: Type[Enum]) -> SAEnum:
    """Store str enums by value so raw SQL filters can use 'pending' etc."""
    return SAEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=32,
    )


def get_db_url(db_url: Optional[str] = None) -> str:
    """
    Convert DATABASE_URL to an async SQLAlchemy driver URL.
    postgres:// and postgresql:// use asyncpg, sqlite:// uses aiosqlite.
    """
    db_url = db_url or settings.DATABASE_URL
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("sqlite://"):
        return db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return db_url


def create_engine(db_url: Optional[str] = None) -> AsyncEngine:
    return create_async_engine(get_db_url(db_url), echo=settings.DEBUG)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """
    Create tables for all registered models.
    """
    from reservation_engine.models import reservation, table, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """
    Close database connections.
    """
    await engine.dispose()
