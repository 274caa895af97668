"""Football Auth Database Configuration - Async SQLAlchemy."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from football_auth.core.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url)
    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        echo=settings.debug and settings.log_level == "DEBUG",
    )


engine = build_engine(settings.database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except (Exception, BaseException):
            # BaseException covers asyncio.CancelledError
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models(bind: AsyncEngine | None = None) -> None:
    """Create any missing tables for the registered models."""
    import football_auth.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection(session_maker: async_sessionmaker[AsyncSession] | None = None) -> bool:
    """Check if database is reachable."""
    from football_auth.core.logging import get_logger

    try:
        async with (session_maker or async_session_maker)() as session:
            await session.execute(text("SELECT 1"))
            return True
    except (OSError, ConnectionError) as e:
        get_logger("database").debug(f"Database connection check failed: {e}")
        return False
    except Exception as e:
        get_logger("database").warning(f"Unexpected error checking database connection: {e}")
        return False
