"""Database session management and connection handling."""

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine as sa_create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import StaticPool

from ..config import get_settings
from . import models

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_database_url(database_url: Optional[str] = None) -> str:
    """
    Get the async database URL, from settings unless one is given.
    postgres:// and postgresql:// URLs are rewritten to use asyncpg.
    """
    db_url = database_url or get_settings().database_url
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return db_url


def create_async_engine(
    database_url: Optional[str] = None,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine.

    Args:
        database_url: Database connection URL. If None, uses the configured one.
            Postgres URLs are normalized to the asyncpg driver either way.
        echo: If True, log all SQL statements.
        pool_size: Number of connections to keep in the pool.
        max_overflow: Maximum overflow connections beyond pool_size.

    Returns:
        AsyncEngine instance.
    """
    url = get_database_url(database_url)

    # Use StaticPool for SQLite to maintain connection across async operations
    if "sqlite" in url:
        return sa_create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return sa_create_async_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
    )


def _make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_async_session_factory(
    engine: Optional[AsyncEngine] = None,
) -> async_sessionmaker[AsyncSession]:
    """
    Get a session factory.

    Args:
        engine: Optional engine. When given, a factory bound to it is returned;
            otherwise the global factory created by init_db() is used.

    Returns:
        async_sessionmaker instance.
    """
    if engine is not None:
        return _make_session_factory(engine)

    if _session_factory is None:
        raise RuntimeError(
            "Database not initialized. Call init_db() first."
        )
    return _session_factory


async def init_db(
    database_url: Optional[str] = None,
    echo: bool = False,
    create_tables: bool = True,
) -> None:
    """
    Initialize the database connection and optionally create tables.

    Args:
        database_url: Database connection URL. If None, uses the configured one.
            Postgres URLs are normalized to the asyncpg driver either way.
        echo: If True, log all SQL statements.
        create_tables: If True, create all tables defined in models.
    """
    global _engine, _session_factory

    logger.info("Initializing database connection...")

    _engine = create_async_engine(database_url, echo=echo)
    _session_factory = _make_session_factory(_engine)

    if create_tables:
        async with _engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)
            logger.info("Database tables created successfully.")

    logger.info("Database initialized successfully.")


async def close_db() -> None:
    """Close the database connection and clean up resources."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection closed.")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection function for FastAPI.

    Yields:
        AsyncSession instance.

    Example:
        @app.post("/payouts")
        async def create_payout(db: AsyncSession = Depends(get_db)):
            ...
    """
    session_factory = get_async_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
