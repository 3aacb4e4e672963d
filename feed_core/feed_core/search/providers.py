"""Capability providers for search and search indexing.

``search.type`` selects both halves together: ``database`` pairs catalog
search with a no-op indexer, ``http`` pairs the remote index client for
both.
"""

from __future__ import annotations

from feed_core.composition.capabilities import Capability
from feed_core.composition.errors import ValidationIssue
from feed_core.composition.provider import CapabilityProvider, Dependencies
from feed_core.config import FeedSettings
from feed_core.search.database_search import DatabaseSearchService, NullSearchIndexer
from feed_core.search.http_search import HttpSearchIndexer, HttpSearchService


def _validate_http(provider: CapabilityProvider, settings: FeedSettings) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not settings.search.endpoint.strip():
        issues.append(provider.issue("search.endpoint", "must not be empty for http search"))
    elif not settings.search.endpoint.startswith(("http://", "https://")):
        issues.append(provider.issue("search.endpoint", "must be an http:// or https:// URL"))
    if not settings.search.api_key.get_secret_value().strip():
        issues.append(provider.issue("search.api_key", "must not be empty for http search"))
    if not settings.search.index_name.strip():
        issues.append(provider.issue("search.index_name", "must not be empty for http search"))
    return issues


def _http_kwargs(settings: FeedSettings) -> dict[str, object]:
    return {
        "endpoint": settings.search.endpoint,
        "api_key": settings.search.api_key.get_secret_value(),
        "index_name": settings.search.index_name,
        "timeout": settings.search.timeout,
    }


class DatabaseSearchProvider(CapabilityProvider):
    name = "database"
    capability = Capability.SEARCH
    requires = (Capability.PACKAGE_DATABASE,)

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.search.is_type("database")

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> DatabaseSearchService:
        return DatabaseSearchService(dependencies[Capability.PACKAGE_DATABASE])


class HttpSearchProvider(CapabilityProvider):
    name = "http"
    capability = Capability.SEARCH

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.search.is_type("http")

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        return _validate_http(self, settings)

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> HttpSearchService:
        return HttpSearchService(**_http_kwargs(settings))  # type: ignore[arg-type]


class NullSearchIndexerProvider(CapabilityProvider):
    name = "null"
    capability = Capability.SEARCH_INDEXER

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.search.is_type("database")

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> NullSearchIndexer:
        return NullSearchIndexer()


class HttpSearchIndexerProvider(CapabilityProvider):
    name = "http"
    capability = Capability.SEARCH_INDEXER

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.search.is_type("http")

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        return _validate_http(self, settings)

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> HttpSearchIndexer:
        return HttpSearchIndexer(**_http_kwargs(settings))  # type: ignore[arg-type]
