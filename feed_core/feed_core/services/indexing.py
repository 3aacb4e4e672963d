"""Package upload and download workflows.

Both services receive their backends through the constructor; they never
look capabilities up themselves, so tests can hand them fakes directly.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import ValidationError

from feed_core.database.package_database import PackageAddResult, PackageDatabase
from feed_core.models.package import Package
from feed_core.search.base import SearchIndexer
from feed_core.storage.base import StoragePutResult, StorageService

logger = logging.getLogger(__name__)


class IndexingResult(str, Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"
    INVALID_PACKAGE = "invalid_package"


class PackageIndexingService:
    """Store package content, record it in the catalog and index it."""

    def __init__(self, database: PackageDatabase, storage: StorageService, indexer: SearchIndexer) -> None:
        self._database = database
        self._storage = storage
        self._indexer = indexer

    async def index(
        self,
        package_id: str,
        version: str,
        content: bytes,
        description: str = "",
        authors: list[str] | None = None,
        tags: list[str] | None = None,
    ) -> IndexingResult:
        if not content:
            return IndexingResult.INVALID_PACKAGE
        try:
            package = Package(
                package_id=package_id,
                version=version,
                description=description,
                authors=authors or [],
                tags=tags or [],
            )
        except ValidationError as exc:
            logger.info("Rejected package %s %s: %s", package_id, version, exc)
            return IndexingResult.INVALID_PACKAGE

        if await self._database.exists(package.package_id, package.version):
            return IndexingResult.ALREADY_EXISTS

        put = await self._storage.put(package.content_path, content)
        if put is StoragePutResult.CONFLICT:
            logger.warning("Content for %s %s already stored with different bytes", package_id, version)
            return IndexingResult.ALREADY_EXISTS

        if await self._database.add(package) is PackageAddResult.ALREADY_EXISTS:
            return IndexingResult.ALREADY_EXISTS

        await self._indexer.index(package)
        logger.info("Indexed package %s %s", package.package_id, package.version)
        return IndexingResult.SUCCESS


class PackageContentService:
    """Serve package versions and their content."""

    def __init__(self, database: PackageDatabase, storage: StorageService) -> None:
        self._database = database
        self._storage = storage

    async def versions(self, package_id: str) -> list[str]:
        return [p.version for p in await self._database.find(package_id)]

    async def download(self, package_id: str, version: str) -> bytes | None:
        """Return content of a version, listed or not, and count the download."""
        package = await self._database.find_one(package_id, version, include_unlisted=True)
        if package is None:
            return None
        content = await self._storage.get(package.content_path)
        if content is None:
            logger.error("Catalog lists %s %s but storage has no content", package_id, version)
            return None
        await self._database.add_download(package_id, version)
        return content
