"""
Async SQLAlchemy engine, session factory and request-scoped sessions.

SQLite (aiosqlite) is the default store; any async URL works in production.
Slow statements are logged and session failures are counted in
``fitsnap_db_errors_total``.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from fastapi import HTTPException
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from fitsnap.config import get_settings
from fitsnap.utils.prometheus_metrics import db_errors_total

_logger = logging.getLogger("fitsnap.db")

settings = get_settings()

# 느린 쿼리 임계값 (초)
SLOW_QUERY_THRESHOLD = 1.0

DATABASE_URL = settings.database_url.strip()
IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_options() -> Dict[str, Any]:
    if IS_SQLITE:
        # 파일 기반 SQLite는 풀링 불필요, 이벤트 루프가 바뀌어도 안전
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": True,
    }


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options())


if IS_SQLITE:
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # 사용자 삭제 시 photo_entries / share_links ON DELETE CASCADE 적용
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(engine.sync_engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(engine.sync_engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start_times = conn.info.get("query_start_time")
    if not start_times:
        return
    elapsed = time.perf_counter() - start_times.pop()
    if elapsed >= SLOW_QUERY_THRESHOLD:
        _logger.warning(
            "Slow query",
            extra={"event": "db", "ms": round(elapsed * 1000), "query": statement[:100]},
        )


async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create missing tables for users, photo entries and share links."""
    import fitsnap.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()


def _log_session_error(message: str, exc: Exception) -> None:
    _logger.error(
        message,
        extra={"event": "db", "error_type": type(exc).__name__, "error": str(exc)[:200]},
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session dependency.

    The whole request is one transaction: committed when the handler returns,
    rolled back when it raises. HTTP errors roll back without counting as DB
    errors.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except HTTPException:
            await session.rollback()
            raise
        except Exception as e:
            db_errors_total.inc()
            _log_session_error("DB error", e)
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for background work (e.g. business metrics), outside requests."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            _log_session_error("DB context error", e)
            await session.rollback()
            raise
