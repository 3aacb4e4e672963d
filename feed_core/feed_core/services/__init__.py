"""Feed workflows composed from capability implementations."""

from feed_core.services.indexing import IndexingResult, PackageContentService, PackageIndexingService

__all__ = [
    "IndexingResult",
    "PackageContentService",
    "PackageIndexingService",
]
