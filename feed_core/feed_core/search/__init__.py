"""Package search backends."""

from feed_core.search.base import SearchBackendError, SearchIndexer, SearchService
from feed_core.search.database_search import DatabaseSearchService, NullSearchIndexer
from feed_core.search.http_search import HttpSearchIndexer, HttpSearchService
from feed_core.search.providers import (
    DatabaseSearchProvider,
    HttpSearchIndexerProvider,
    HttpSearchProvider,
    NullSearchIndexerProvider,
)

__all__ = [
    "DatabaseSearchProvider",
    "DatabaseSearchService",
    "HttpSearchIndexer",
    "HttpSearchIndexerProvider",
    "HttpSearchProvider",
    "HttpSearchService",
    "NullSearchIndexer",
    "NullSearchIndexerProvider",
    "SearchBackendError",
    "SearchIndexer",
    "SearchService",
]
