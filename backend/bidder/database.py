"""
Database configuration and session management.
Uses PostgreSQL via asyncpg with SQLAlchemy 2 async engine.

The database is optional: without DATABASE_URL the service runs single-tenant
with a file-backed settings store and no cooldown tracking.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from bidder.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine. Pool sizing only applies to server databases."""
    kwargs = {"echo": False, "pool_pre_ping": True}
    if database_url.startswith("postgresql"):
        kwargs.update(pool_size=5, max_overflow=10, connect_args={"timeout": 30})
    return create_async_engine(database_url, **kwargs)


engine: Optional[AsyncEngine] = build_engine(settings.database_url) if settings.database_configured else None

async_session: Optional[async_sessionmaker[AsyncSession]] = (
    async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False) if engine is not None else None
)


async def init_db(db_engine: Optional[AsyncEngine] = None):
    """
    Create all tables defined in models.
    Uses create_all which is safe — it only creates tables that don't exist yet.
    """
    db_engine = db_engine or engine
    if db_engine is None:
        logger.info("DATABASE_URL not set — running without durable storage.")
        return

    # Import models to ensure they are registered with Base.metadata
    import bidder.models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized with {len(Base.metadata.tables)} tables: "
                    f"{', '.join(Base.metadata.tables.keys())}")


async def check_db_connection() -> Optional[bool]:
    """Test database connectivity. None when no database is configured."""
    if engine is None:
        return None
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
