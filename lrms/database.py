"""Database engine, session factory and FastAPI session dependency"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from typing import AsyncGenerator
import logging

from lrms.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create the async engine; SQLite connections enforce foreign keys"""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    async_engine = create_async_engine(url, echo=echo, future=True, connect_args=connect_args, **kwargs)

    if url.startswith("sqlite"):
        # Nondh details, owners and panipatraks must point at rows that exist
        @event.listens_for(async_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return async_engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

# Rows written by the ingestion store stay usable after each commit
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session.

    Ingestion commits as it goes, so anything still pending when the
    request ends is committed here and rolled back on error.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except IntegrityError as e:
            logger.warning(f"Database integrity error: {e}")
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all land record tables"""
    # Make sure every model is registered on the metadata
    import lrms.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.debug(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
