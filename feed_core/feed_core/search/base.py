"""Abstract interfaces for search query and search indexing backends."""

from __future__ import annotations

from typing import Protocol

from feed_core.models.package import Package, SearchResult


class SearchBackendError(Exception):
    """Raised when a remote search backend fails or returns garbage."""


class SearchService(Protocol):
    """Structural interface for package search."""

    async def search(self, query: str = "", skip: int = 0, take: int = 20) -> list[SearchResult]:
        """Return matching packages, one entry per package id."""
        ...


class SearchIndexer(Protocol):
    """Structural interface for keeping a search index up to date."""

    async def index(self, package: Package) -> None:
        """Make *package* visible to search."""
        ...
