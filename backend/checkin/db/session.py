"""
Async engine, session factory and the per-request unit of work.
"""

from typing import AsyncGenerator, Awaitable, Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from checkin.core.config import get_settings
from checkin.core.logging import get_logger
from checkin.db.base import Base
import checkin.models  # noqa: F401 - register mappers on Base.metadata

logger = get_logger(__name__)
settings = get_settings()

AFTER_COMMIT_KEY = "after_commit"


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE clauses unless foreign keys are switched on per connection."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)
enable_sqlite_foreign_keys(engine)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """
    Queue a side effect (an email, say) to run only once the session's
    transaction has committed. Discarded if the transaction rolls back.
    """
    session.info.setdefault(AFTER_COMMIT_KEY, []).append(callback)


async def commit(session: AsyncSession) -> None:
    """Commit, then run the queued after-commit callbacks in order."""
    await session.commit()
    for callback in session.info.pop(AFTER_COMMIT_KEY, []):
        try:
            await callback()
        except Exception as e:
            # The data is already committed; a failed side effect cannot undo it
            logger.error("after_commit_callback_failed", error=str(e))


async def rollback(session: AsyncSession) -> None:
    session.info.pop(AFTER_COMMIT_KEY, None)
    await session.rollback()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request. Everything a request writes commits together,
    or rolls back together if the handler raises. Side effects queued with
    after_commit run only after a successful commit.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await rollback(session)
            raise


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
