"""Per-unit-of-work database context.

A :class:`DatabaseContext` owns at most one ``AsyncSession`` on a shared
engine.  It is registered with a ``SCOPED`` lifetime so every component of
one request works in the same session; the scope closes it at the end.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


class DatabaseContext:
    """Lazily opened session on a catalog engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._factory = async_sessionmaker(engine, expire_on_commit=False)
        self._session: AsyncSession | None = None

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    @property
    def session(self) -> AsyncSession:
        """The context's session, opened on first access."""
        if self._session is None:
            self._session = self._factory()
        return self._session

    async def commit(self) -> None:
        """Commit the session, rolling back if the commit fails."""
        if self._session is None:
            return
        try:
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

    async def aclose(self) -> None:
        """Close the session, discarding uncommitted work."""
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
