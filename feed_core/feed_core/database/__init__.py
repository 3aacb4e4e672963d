"""SQL package catalog: engines, per-scope context and providers."""

from feed_core.database.context import DatabaseContext
from feed_core.database.engine import create_tables, dispose_engines, get_engine
from feed_core.database.package_database import PackageAddResult, PackageDatabase, SqlPackageDatabase
from feed_core.database.providers import (
    MySqlContextProvider,
    PostgreSqlContextProvider,
    SqliteContextProvider,
    SqlPackageDatabaseProvider,
    SqlServerContextProvider,
)

__all__ = [
    "DatabaseContext",
    "MySqlContextProvider",
    "PackageAddResult",
    "PackageDatabase",
    "PostgreSqlContextProvider",
    "SqlPackageDatabase",
    "SqlPackageDatabaseProvider",
    "SqlServerContextProvider",
    "SqliteContextProvider",
    "create_tables",
    "dispose_engines",
    "get_engine",
]
