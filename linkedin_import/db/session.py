from collections.abc import AsyncIterator
import logging
import os

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from linkedin_import.logging_utils import structured_log
from linkedin_import.settings import settings

logger = logging.getLogger(__name__)

_NULL_POOL_ENVIRONMENTS = {"test", "development", "dev", "local"}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def resolve_pool_mode(raw_mode: str) -> str:
    mode = (raw_mode or "").strip().lower()
    if mode in {"null", "queue"}:
        return mode
    if mode != "auto":
        structured_log(logger, "warning", "db.invalid_pool_mode_fallback", database_pool_mode=raw_mode)
        return "queue"
    if os.getenv("PYTEST_CURRENT_TEST"):
        return "null"
    if (os.getenv("APP_ENV") or "").strip().lower() in _NULL_POOL_ENVIRONMENTS:
        return "null"
    return "queue"


def _engine_options(pool_mode: str) -> dict[str, object]:
    if pool_mode == "null":
        return {"pool_pre_ping": True, "poolclass": NullPool}
    return {
        "pool_pre_ping": True,
        "pool_size": max(1, int(settings.database_pool_size)),
        "max_overflow": max(0, int(settings.database_pool_max_overflow)),
        "pool_timeout": max(1, int(settings.database_pool_timeout_seconds)),
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        pool_mode = resolve_pool_mode(settings.database_pool_mode)
        _engine = create_async_engine(settings.database_url, **_engine_options(pool_mode))
        structured_log(logger, "info", "db.engine_initialized", pool_mode=pool_mode)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async with get_session_factory()() as session:
        yield session


async def check_database() -> bool:
    try:
        async with get_engine().connect() as connection:
            result = await connection.execute(text("SELECT 1"))
            return result.scalar_one() == 1
    except (SQLAlchemyError, OSError):
        logger.exception("db.healthcheck_failed")
        return False


async def close_engine() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    structured_log(logger, "info", "db.engine_disposed")
    _engine = None
    _session_factory = None
