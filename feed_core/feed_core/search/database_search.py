"""Search served straight from the package catalog.

The catalog is its own index, so the matching indexer does nothing.
"""

from __future__ import annotations

import logging

from feed_core.database.package_database import PackageDatabase
from feed_core.models.package import Package, SearchResult

logger = logging.getLogger(__name__)


class DatabaseSearchService:
    def __init__(self, database: PackageDatabase) -> None:
        self._database = database

    async def search(self, query: str = "", skip: int = 0, take: int = 20) -> list[SearchResult]:
        return await self._database.search(query, skip=skip, take=take)


class NullSearchIndexer:
    async def index(self, package: Package) -> None:
        logger.debug("Database search needs no indexing (%s %s)", package.package_id, package.version)
