"""
Async engine and session handling.

One process-wide engine; every concurrent executor or enrichment task opens
its own short-lived session from it. Sessions commit on clean exit and roll
back on error.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncContextManager, AsyncIterator, Callable

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///data/hirescout.db"

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

# sync URL prefix -> async driver prefix
_ASYNC_DRIVERS = {
    "sqlite:///": "sqlite+aiosqlite:///",
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
}

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys=ON",
    # Readers never block the single writer
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=30000",
)

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def to_async_url(url: str) -> str:
    """Swap a plain SQLite / PostgreSQL URL onto its async driver."""
    for prefix, async_prefix in _ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def _apply_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def _build_engine(url: str, echo: bool, pool_size: int) -> AsyncEngine:
    async_url = to_async_url(url)
    if not async_url.startswith("sqlite"):
        return create_async_engine(
            async_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=10,
            pool_pre_ping=True,
        )

    if url.startswith("sqlite:///"):
        Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    engine = create_async_engine(async_url, echo=echo, connect_args={"timeout": 30})
    event.listen(engine.sync_engine, "connect", _apply_sqlite_pragmas)
    return engine


async def get_async_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> AsyncEngine:
    """Return the process engine, creating it on first call.

    Later calls return the existing engine whatever URL they pass; call
    ``dispose_engines_async`` first to switch databases.
    """
    global _engine, _sessions

    if _engine is None:
        _engine = _build_engine(url, echo, pool_size)
        _sessions = async_sessionmaker(_engine, autoflush=False, expire_on_commit=False)
    return _engine


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """Open a session; commit on exit, roll back if the block raises.

    Usage:
        async with get_async_session() as session:
            ...
    """
    if _sessions is None:
        await get_async_engine()
    assert _sessions is not None

    async with _sessions() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def init_db_async(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
    """Create missing tables (development and tests; deployments use Alembic)."""
    engine = await get_async_engine(url, echo=echo)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db_async(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop every table. Destroys all data."""
    engine = await get_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engines_async() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _sessions

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None
