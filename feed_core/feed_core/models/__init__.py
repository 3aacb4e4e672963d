"""Domain models for the package feed."""

from feed_core.models.package import Package, SearchResult

__all__ = [
    "Package",
    "SearchResult",
]
