"""SQL-backed package catalog.

All queries go through the request's :class:`DatabaseContext`, so every
component within one scope shares a session.  Mutating operations commit
immediately.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from feed_core.database.context import DatabaseContext
from feed_core.database.tables import PackageTable
from feed_core.models.package import Package, SearchResult

logger = logging.getLogger(__name__)


class PackageAddResult(str, Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"


class PackageDatabase(Protocol):
    """Structural interface for package catalogs."""

    async def add(self, package: Package) -> PackageAddResult: ...

    async def exists(self, package_id: str, version: str | None = None) -> bool: ...

    async def find(self, package_id: str, include_unlisted: bool = False) -> list[Package]: ...

    async def find_one(self, package_id: str, version: str, include_unlisted: bool = False) -> Package | None: ...

    async def unlist(self, package_id: str, version: str) -> bool: ...

    async def relist(self, package_id: str, version: str) -> bool: ...

    async def add_download(self, package_id: str, version: str) -> None: ...

    async def hard_delete(self, package_id: str, version: str) -> bool: ...

    async def search(self, query: str = "", skip: int = 0, take: int = 20) -> list[SearchResult]: ...


def _to_model(row: PackageTable) -> Package:
    return Package(
        package_id=row.package_id,
        version=row.version,
        description=row.description,
        authors=list(row.authors or []),
        tags=list(row.tags or []),
        listed=row.listed,
        downloads=row.downloads,
        published=row.published,
    )


class SqlPackageDatabase:
    """:class:`PackageDatabase` over the ``packages`` table."""

    def __init__(self, context: DatabaseContext) -> None:
        self._context = context

    def _version_filter(self, package_id: str, version: str) -> tuple[object, object]:
        return (
            PackageTable.package_id_lower == package_id.lower(),
            PackageTable.version == version.strip().lower(),
        )

    async def add(self, package: Package) -> PackageAddResult:
        """Insert *package*; report an existing (id, version) instead of raising."""
        if await self.exists(package.package_id, package.version):
            return PackageAddResult.ALREADY_EXISTS

        session = self._context.session
        values = {
            "package_id": package.package_id,
            "package_id_lower": package.package_id.lower(),
            "version": package.version,
            "description": package.description,
            "authors": package.authors,
            "tags": package.tags,
            "listed": package.listed,
            "downloads": package.downloads,
        }
        if package.published is not None:
            values["published"] = package.published
        session.add(PackageTable(**values))
        try:
            await self._context.commit()
        except IntegrityError:
            # Lost a race with a concurrent upload of the same version.
            return PackageAddResult.ALREADY_EXISTS

        logger.info("Added package %s %s", package.package_id, package.version)
        return PackageAddResult.SUCCESS

    async def exists(self, package_id: str, version: str | None = None) -> bool:
        stmt = select(PackageTable.key).where(PackageTable.package_id_lower == package_id.lower())
        if version is not None:
            stmt = stmt.where(PackageTable.version == version.strip().lower())
        result = await self._context.session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def find(self, package_id: str, include_unlisted: bool = False) -> list[Package]:
        stmt = select(PackageTable).where(PackageTable.package_id_lower == package_id.lower())
        if not include_unlisted:
            stmt = stmt.where(PackageTable.listed.is_(True))
        result = await self._context.session.execute(stmt.order_by(PackageTable.key))
        return [_to_model(row) for row in result.scalars().all()]

    async def find_one(self, package_id: str, version: str, include_unlisted: bool = False) -> Package | None:
        stmt = select(PackageTable).where(*self._version_filter(package_id, version))
        if not include_unlisted:
            stmt = stmt.where(PackageTable.listed.is_(True))
        result = await self._context.session.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_model(row) if row is not None else None

    async def _set_listed(self, package_id: str, version: str, listed: bool) -> bool:
        stmt = update(PackageTable).where(*self._version_filter(package_id, version)).values(listed=listed)
        result = await self._context.session.execute(stmt)
        await self._context.commit()
        return (result.rowcount or 0) > 0

    async def unlist(self, package_id: str, version: str) -> bool:
        """Hide a version from search; returns False if it does not exist."""
        return await self._set_listed(package_id, version, False)

    async def relist(self, package_id: str, version: str) -> bool:
        return await self._set_listed(package_id, version, True)

    async def add_download(self, package_id: str, version: str) -> None:
        stmt = (
            update(PackageTable)
            .where(*self._version_filter(package_id, version))
            .values(downloads=PackageTable.downloads + 1)
        )
        await self._context.session.execute(stmt)
        await self._context.commit()

    async def hard_delete(self, package_id: str, version: str) -> bool:
        stmt = delete(PackageTable).where(*self._version_filter(package_id, version))
        result = await self._context.session.execute(stmt)
        await self._context.commit()
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("Deleted package %s %s", package_id, version)
        return deleted

    async def search(self, query: str = "", skip: int = 0, take: int = 20) -> list[SearchResult]:
        """Substring search over id and description, listed versions only.

        Results are grouped by package id and ordered by id.
        """
        stmt = select(PackageTable).where(PackageTable.listed.is_(True))
        query = query.strip().lower()
        if query:
            # LIKE wildcards in the query match literally.
            stmt = stmt.where(
                or_(
                    PackageTable.package_id_lower.contains(query, autoescape=True),
                    PackageTable.description.icontains(query, autoescape=True),
                )
            )
        result = await self._context.session.execute(stmt.order_by(PackageTable.package_id_lower, PackageTable.key))

        grouped: dict[str, SearchResult] = {}
        for row in result.scalars().all():
            entry = grouped.get(row.package_id_lower)
            if entry is None:
                entry = grouped[row.package_id_lower] = SearchResult(
                    package_id=row.package_id,
                    versions=[],
                    description=row.description,
                )
            entry.versions.append(row.version)
            entry.total_downloads += row.downloads
            # Latest upload carries the description.
            entry.description = row.description

        return list(grouped.values())[skip : skip + take]
