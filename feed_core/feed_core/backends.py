"""Default provider registration.

Registration order is the documented tie-break when several providers apply
to the same configuration (the earliest wins); changing it is a behavioural
change.

=================  =====  ===========  ==========================================
Capability         Order  Provider     Applies when
=================  =====  ===========  ==========================================
database_context   1      sqlite       ``database.type == "sqlite"``
                   2      postgresql   ``database.type in {"postgresql", "postgres"}``
                   3      mysql        ``database.type in {"mysql", "mariadb"}``
                   4      sqlserver    ``database.type in {"sqlserver", "mssql"}``
package_database   1      sql          any of the SQL database types above
storage            1      filesystem   ``storage.type in {"filesystem", "file"}``
                   2      awss3        ``storage.type in {"awss3", "s3"}``
search             1      database     ``search.type == "database"``
                   2      http         ``search.type == "http"``
search_indexer     1      null         ``search.type == "database"``
                   2      http         ``search.type == "http"``
=================  =====  ===========  ==========================================
"""

from __future__ import annotations

from feed_core.composition.capabilities import DEFAULT_LIFETIMES
from feed_core.composition.registry import ProviderRegistry
from feed_core.database.providers import (
    MySqlContextProvider,
    PostgreSqlContextProvider,
    SqliteContextProvider,
    SqlPackageDatabaseProvider,
    SqlServerContextProvider,
)
from feed_core.search.providers import (
    DatabaseSearchProvider,
    HttpSearchIndexerProvider,
    HttpSearchProvider,
    NullSearchIndexerProvider,
)
from feed_core.storage.providers import FileStorageProvider, S3StorageProvider


def add_database_providers(registry: ProviderRegistry) -> None:
    registry.register(SqliteContextProvider())
    registry.register(PostgreSqlContextProvider())
    registry.register(MySqlContextProvider())
    registry.register(SqlServerContextProvider())
    registry.register(SqlPackageDatabaseProvider())


def add_storage_providers(registry: ProviderRegistry) -> None:
    registry.register(FileStorageProvider())
    registry.register(S3StorageProvider())


def add_search_providers(registry: ProviderRegistry) -> None:
    registry.register(DatabaseSearchProvider())
    registry.register(HttpSearchProvider())
    registry.register(NullSearchIndexerProvider())
    registry.register(HttpSearchIndexerProvider())


def build_default_registry() -> ProviderRegistry:
    """Return a new, unsealed registry with every bundled provider."""
    registry = ProviderRegistry()
    for capability, lifetime in DEFAULT_LIFETIMES.items():
        registry.set_lifetime(capability, lifetime)

    add_database_providers(registry)
    add_storage_providers(registry)
    add_search_providers(registry)
    return registry
