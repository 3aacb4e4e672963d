"""Capability providers for the SQL package catalog.

One provider per SQL dialect builds the scoped :class:`DatabaseContext`;
a single ``sql`` provider builds the :class:`SqlPackageDatabase` on top of
whichever context was selected.
"""

from __future__ import annotations

from feed_core.composition.capabilities import Capability
from feed_core.composition.errors import ValidationIssue
from feed_core.composition.provider import CapabilityProvider, Dependencies
from feed_core.config import FeedSettings
from feed_core.database.context import DatabaseContext
from feed_core.database.engine import get_engine
from feed_core.database.package_database import SqlPackageDatabase


class _SqlContextProvider(CapabilityProvider):
    """Base for dialect providers: match on ``database.type``, check the URL scheme."""

    capability = Capability.DATABASE_CONTEXT
    type_names: tuple[str, ...] = ()
    url_schemes: tuple[str, ...] = ()

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.database.is_type(*self.type_names)

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        url = settings.database.connection_string.strip()
        if not url:
            return [self.issue("database.connection_string", "must not be empty")]
        scheme = url.split("://", 1)[0].lower() if "://" in url else ""
        if scheme not in self.url_schemes:
            expected = ", ".join(f"{s}://" for s in self.url_schemes)
            return [self.issue("database.connection_string", f"expected a {expected} URL, got '{scheme or url}'")]
        return []

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> DatabaseContext:
        engine = get_engine(
            settings.database.connection_string,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
        )
        return DatabaseContext(engine)


class SqliteContextProvider(_SqlContextProvider):
    name = "sqlite"
    type_names = ("sqlite",)
    url_schemes = ("sqlite+aiosqlite",)


class PostgreSqlContextProvider(_SqlContextProvider):
    name = "postgresql"
    type_names = ("postgresql", "postgres")
    url_schemes = ("postgresql+asyncpg",)


class MySqlContextProvider(_SqlContextProvider):
    name = "mysql"
    type_names = ("mysql", "mariadb")
    url_schemes = ("mysql+aiomysql", "mysql+asyncmy")


class SqlServerContextProvider(_SqlContextProvider):
    name = "sqlserver"
    type_names = ("sqlserver", "mssql")
    url_schemes = ("mssql+aioodbc",)


SQL_DATABASE_TYPES: tuple[str, ...] = (
    *SqliteContextProvider.type_names,
    *PostgreSqlContextProvider.type_names,
    *MySqlContextProvider.type_names,
    *SqlServerContextProvider.type_names,
)


class SqlPackageDatabaseProvider(CapabilityProvider):
    name = "sql"
    capability = Capability.PACKAGE_DATABASE
    requires = (Capability.DATABASE_CONTEXT,)

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.database.is_type(*SQL_DATABASE_TYPES)

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> SqlPackageDatabase:
        return SqlPackageDatabase(dependencies[Capability.DATABASE_CONTEXT])
