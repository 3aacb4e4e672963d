"""Async SQLAlchemy engines for the package catalog.

Engines are process-wide and cached per connection string; the per-scope
:class:`~feed_core.database.context.DatabaseContext` only opens sessions on
them.  Engine type is determined by the URL scheme:

  - ``sqlite+aiosqlite://``   -> single-file (or in-memory) SQLite engine
  - ``postgresql+asyncpg://`` -> connection-pooled PostgreSQL engine
  - ``mysql+aiomysql://``     -> connection-pooled MySQL engine
  - ``mssql+aioodbc://``      -> connection-pooled SQL Server engine
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

_engines: dict[str, AsyncEngine] = {}
_engines_lock = threading.Lock()


def _create_sqlite_engine(database_url: str) -> AsyncEngine:
    db_path = database_url.split("///", 1)[-1] if "///" in database_url else ":memory:"
    if not db_path or db_path == ":memory:":
        # One shared connection so every session sees the same in-memory data.
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_conn: object, _: object) -> None:
            cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

    logger.info("Created SQLite engine: %s", database_url)
    return engine


def get_engine(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 20,
) -> AsyncEngine:
    """Return the cached async engine for *database_url*, creating it on first use.

    Parameters
    ----------
    database_url:
        SQLAlchemy async connection string.
    pool_size:
        Persistent connections for server databases (ignored for SQLite).
    max_overflow:
        Overflow connections for server databases (ignored for SQLite).
    """
    engine = _engines.get(database_url)
    if engine is not None:
        return engine

    with _engines_lock:
        engine = _engines.get(database_url)
        if engine is not None:
            return engine

        if database_url.startswith("sqlite"):
            engine = _create_sqlite_engine(database_url)
        else:
            engine = create_async_engine(
                database_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=10,
                echo=False,
            )
            logger.info(
                "Created async engine pool_size=%d max_overflow=%d",
                pool_size,
                max_overflow,
            )

        _engines[database_url] = engine
        return engine


async def create_tables(engine: AsyncEngine) -> None:
    """Create the catalog tables if they do not exist (idempotent)."""
    from feed_core.database.tables import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Catalog tables created/verified")


async def dispose_engines() -> None:
    """Dispose every cached engine pool (call during shutdown)."""
    with _engines_lock:
        engines = list(_engines.values())
        _engines.clear()
    for engine in engines:
        await engine.dispose()
