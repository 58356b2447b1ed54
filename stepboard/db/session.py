"""
Database Session Management

Provides the async engine and session factory.

The database is optional: without DATABASE_URL the factory stays None,
core services return empty results and HTTP routes answer 503
(see stepboard.api.dependencies).
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from stepboard.config import settings


async_engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None


def _get_async_url(url: str) -> str:
    """Convert sync database URL to async version."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///")
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://")
    return url


def configure_database(database_url: Optional[str]) -> Optional[async_sessionmaker]:
    """
    (Re)create the async engine and session factory.

    Args:
        database_url: Connection URL, or None to run without a database

    Returns:
        The session factory, or None when no URL is given
    """
    global async_engine, AsyncSessionLocal

    if not database_url:
        async_engine = None
        AsyncSessionLocal = None
        return None

    async_url = _get_async_url(database_url)

    if async_url.startswith("sqlite"):
        async_engine = create_async_engine(
            async_url,
            connect_args={"check_same_thread": False}
        )
    elif async_url.startswith("postgresql"):
        # PostgreSQL with connection pool settings
        async_engine = create_async_engine(
            async_url,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,  # 30 minutes
        )
    else:
        async_engine = create_async_engine(async_url)

    AsyncSessionLocal = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )
    return AsyncSessionLocal


def get_session_factory() -> Optional[async_sessionmaker]:
    """Current session factory (None when the database is not configured)."""
    return AsyncSessionLocal


# =============================================================================
# Initialization
# =============================================================================

async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create tables for all registered models."""
    engine = engine or async_engine
    if engine is None:
        return

    from stepboard.models import Base, load_all_models
    # Import all models to register them
    load_all_models()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db(engine: Optional[AsyncEngine] = None) -> None:
    engine = engine or async_engine
    if engine is not None:
        await engine.dispose()


configure_database(settings.database_url)
