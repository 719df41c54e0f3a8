"""Database configuration and session management.

Provides the async SQLAlchemy engine and session factory backing the
database stores. Nothing connects until a store is used.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from app.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an async engine.

    Args:
        database_url: SQLAlchemy URL, defaults to the configured one.

    Returns:
        AsyncEngine instance.
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table known to the models.

    Migrations own the schema in deployed environments; this is for
    throwaway databases such as the test suite's.
    """
    # Registers the models on Base.metadata.
    from app.infrastructure import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
