"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from credcore.core.logging import get_logger
from credcore.core.settings import DatabaseSettings
from credcore.db.base import BaseEntity

# Imported for their side effect of registering tables on BaseEntity.metadata.
from credcore.db import models_clients, models_sshkeys, models_user  # noqa: F401

log = get_logger(__name__)


class _EngineHolder:
    """Lazy singleton for the engine and its session factory."""

    engine: AsyncEngine | None = None
    factory: async_sessionmaker[AsyncSession] | None = None


_holder = _EngineHolder()


def _create_engine(db: DatabaseSettings) -> AsyncEngine:
    if db.async_url.startswith("sqlite"):
        return create_async_engine(db.async_url)
    return create_async_engine(
        db.async_url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    if _holder.engine is None:
        _holder.engine = _create_engine(DatabaseSettings())
    return _holder.engine


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create the async session factory."""
    if _holder.factory is None:
        _holder.factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _holder.factory


async def create_schema() -> None:
    """Create any missing tables."""
    async with get_engine().begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    log.info("db.schema_created")


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    if _holder.engine is not None:
        await _holder.engine.dispose()
    _holder.engine = None
    _holder.factory = None


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an async database session."""
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
