"""
Database Configuration and Connection Management
===============================================

This module handles the Supabase Postgres connection using SQLAlchemy's
async ORM. It provides session management, connection pooling and schema
initialization.

Key Features:
- SQLAlchemy async engine (asyncpg driver)
- Database session dependency injection
- Connection pooling for performance
- Schema creation for every SkillWeave table
- JSON columns stored as JSONB on Postgres
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import JSON, DateTime, MetaData, text
import logging
from datetime import datetime
from typing import AsyncGenerator

from skillweave.config import settings
from skillweave.core.cache import clear_stale, discard_stale
from skillweave.core.utils import utcnow

logger = logging.getLogger(__name__)

# JSON everywhere, JSONB on Postgres (Supabase)
JSONType = JSON().with_variant(JSONB(), "postgresql")

# Create async engine with connection pooling
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DEBUG,  # Log SQL queries in debug mode
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,  # Verify connections before use
    pool_recycle=3600,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Keep objects accessible after commit
    autoflush=True,
    autocommit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Carries the constraint naming convention used by every table.
    """
    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get database session.

    The session is committed when the request handler returns normally and
    rolled back when it raises. Cache namespaces marked stale during the
    request are cleared only after the commit.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_stale(session)
            raise
        else:
            await clear_stale(session)
        finally:
            await session.close()


async def init_db():
    """
    Create all SkillWeave tables if they don't exist.

    Raises:
        Exception: If database initialization fails
    """
    try:
        logger.info("Initializing database connection...")

        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("✅ Database connection test successful")

        # Import all models to ensure they're registered
        from skillweave.models import user, portfolio, template, profile  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("✅ Database tables created/verified")

    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise


async def close_db():
    """Dispose of the connection pool on shutdown."""
    try:
        logger.info("Closing database connections...")
        await engine.dispose()
        logger.info("✅ Database connections closed")
    except Exception as e:
        logger.error(f"❌ Error closing database connections: {e}")


async def ping(db: AsyncSession) -> bool:
    """
    Check database health by executing a simple query on ``db``.

    Returns:
        bool: True if database is healthy, False otherwise
    """
    try:
        await db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


class TimestampMixin:
    """Reusable created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
