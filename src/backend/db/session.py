"""
Async database engine, session factory and transaction helpers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import settings
from core.errors import ConflictError, DomainError, TransientStoreError

logger = structlog.get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Get (and lazily create) the application engine."""
    global _engine
    if _engine is None:
        url = settings.database_url
        options: dict = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
        if not url.startswith("sqlite"):
            options["pool_size"] = settings.DB_POOL_SIZE
        _engine = create_async_engine(url, **options)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the application engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Open the engine and verify connectivity."""
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the engine and its pool."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


@asynccontextmanager
async def atomic(
    db: AsyncSession,
    conflict_message: str = "conflicting concurrent update",
) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one transaction on ``db``.

    Commits when the block finishes, rolls back on any exception. Store
    errors are translated so callers never see raw driver exceptions:
    integrity violations become ConflictError, anything else from the store
    becomes TransientStoreError.
    """
    try:
        yield db
        await db.commit()
    except DomainError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.warning("transaction_integrity_violation", error=str(e.orig))
        raise ConflictError(conflict_message) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("transaction_failed", error=str(e), error_type=type(e).__name__)
        raise TransientStoreError("The store could not complete the operation; retry the request") from e
    except BaseException:
        await db.rollback()
        raise
