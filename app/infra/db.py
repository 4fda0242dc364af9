"""
Database infrastructure configuration

Async SQLAlchemy engine and session factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.errors import AppError, StorageError
from app.core.logging import get_logger
from app.models.base import Base

logger = get_logger(__name__)


def _engine_kwargs() -> dict:
    kwargs = {"echo": settings.db_echo, "pool_pre_ping": True}
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return kwargs


engine = create_async_engine(settings.database_url, **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables (development / sqlite only; use alembic elsewhere)"""
    import app.models  # noqa: F401  register mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db.create_all", url=engine.url.render_as_string(hide_password=True))


async def close_db_connection() -> None:
    await engine.dispose()
    logger.info("db.disposed")


@asynccontextmanager
async def storage_guard(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Re-raise driver/ORM failures as StorageError without reinterpreting them"""
    try:
        yield
    except AppError:
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("db.error", operation=operation, error=str(exc))
        raise StorageError(f"{operation} failed", details={"error": str(exc)}) from exc
