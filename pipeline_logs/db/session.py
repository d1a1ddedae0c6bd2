"""Database session management."""

from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from pipeline_logs.core.config import get_settings
from pipeline_logs.core.logging import get_logger
from pipeline_logs.models.base import Base

logger = get_logger(__name__)

# Global engine and session factory
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def init_db(database_url: Optional[str] = None) -> async_sessionmaker[AsyncSession]:
    """
    Initialize database engine and session factory.

    Creates async engine with connection pooling and configures session factory.
    """
    global engine, async_session_factory

    settings = get_settings()
    url = database_url or settings.database_url

    connect_args = {}
    if url.startswith("postgresql+asyncpg"):
        connect_args = {
            "server_settings": {"application_name": settings.app_name},
            "timeout": 30,
        }

    if settings.is_production and not url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=settings.debug,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        logger.info(
            "database_initialized",
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            environment=settings.environment,
        )
    else:
        # Development: No pooling for easier debugging
        engine = create_async_engine(
            url,
            echo=settings.debug,
            poolclass=NullPool,
            connect_args=connect_args,
        )
        logger.info(
            "database_initialized",
            pool_class="NullPool",
            environment=settings.environment,
        )

    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return async_session_factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the initialized session factory."""
    if async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    Yields:
        AsyncSession instance
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_db() -> None:
    """Close database connections and dispose of engine."""
    if engine is not None:
        await engine.dispose()
        logger.info("database_connections_closed")


async def create_tables() -> None:
    """Create all database tables. Use only in development or for testing."""
    if engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")
