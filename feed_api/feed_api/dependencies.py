"""FastAPI dependency injection for settings, the composition root and capabilities.

The process holds one :class:`CompositionRoot`, created during application
startup by :func:`init_composition` and closed by
:func:`dispose_composition`.  Every request gets its own :class:`Scope`;
handlers declare the capabilities they need (``StorageDep``,
``PackageDatabaseDep``, ...) instead of looking them up.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from feed_core.backends import build_default_registry
from feed_core.composition import Capability, CompositionRoot, ProviderRegistry, Scope
from feed_core.config import FeedSettings, load_settings
from feed_core.database import PackageDatabase
from feed_core.search import SearchIndexer, SearchService
from feed_core.services import PackageContentService, PackageIndexingService
from feed_core.storage import StorageService

from feed_api.config import APISettings, load_api_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_settings_cache: APISettings | None = None


def get_settings() -> APISettings:
    """Return the cached :class:`APISettings` singleton."""
    global _settings_cache  # noqa: PLW0603
    if _settings_cache is None:
        _settings_cache = load_api_settings()
    return _settings_cache


SettingsDep = Annotated[APISettings, Depends(get_settings)]

# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------

_root: CompositionRoot | None = None


def init_composition(
    feed_settings: FeedSettings | None = None,
    registry: ProviderRegistry | None = None,
) -> CompositionRoot:
    """Validate configuration and create the process-wide composition root.

    Raises
    ------
    ConfigurationValidationError
        If the configuration fails any selected provider's rules.
    """
    global _root  # noqa: PLW0603
    root = CompositionRoot(registry or build_default_registry(), feed_settings or load_settings())
    _root = root
    return root


async def dispose_composition() -> None:
    """Dispose singletons held by the composition root (call during shutdown)."""
    global _root  # noqa: PLW0603
    if _root is not None:
        root, _root = _root, None
        await root.aclose()


def get_composition_root() -> CompositionRoot:
    """Return the process-wide :class:`CompositionRoot`."""
    if _root is None:
        raise RuntimeError(
            "Composition root has not been initialised. Ensure init_composition() is called during application startup."
        )
    return _root


CompositionRootDep = Annotated[CompositionRoot, Depends(get_composition_root)]

# ---------------------------------------------------------------------------
# Request scope
# ---------------------------------------------------------------------------


async def get_scope(root: CompositionRootDep) -> AsyncGenerator[Scope, None]:
    """Yield a :class:`Scope` for the current request and dispose it afterwards."""
    scope = root.create_scope()
    try:
        yield scope
    finally:
        await scope.aclose()


ScopeDep = Annotated[Scope, Depends(get_scope)]

# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


def get_package_database(scope: ScopeDep) -> PackageDatabase:
    return scope.get(Capability.PACKAGE_DATABASE)


def get_storage(scope: ScopeDep) -> StorageService:
    return scope.get(Capability.STORAGE)


def get_search(scope: ScopeDep) -> SearchService:
    return scope.get(Capability.SEARCH)


def get_search_indexer(scope: ScopeDep) -> SearchIndexer:
    return scope.get(Capability.SEARCH_INDEXER)


PackageDatabaseDep = Annotated[PackageDatabase, Depends(get_package_database)]
StorageDep = Annotated[StorageService, Depends(get_storage)]
SearchDep = Annotated[SearchService, Depends(get_search)]
IndexerDep = Annotated[SearchIndexer, Depends(get_search_indexer)]

# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


def get_indexing_service(
    database: PackageDatabaseDep,
    storage: StorageDep,
    indexer: IndexerDep,
) -> PackageIndexingService:
    return PackageIndexingService(database, storage, indexer)


def get_content_service(database: PackageDatabaseDep, storage: StorageDep) -> PackageContentService:
    return PackageContentService(database, storage)


IndexingServiceDep = Annotated[PackageIndexingService, Depends(get_indexing_service)]
ContentServiceDep = Annotated[PackageContentService, Depends(get_content_service)]
