"""Feed configuration loaded from environment variables.

The :class:`FeedSettings` object is the configuration snapshot every
capability provider is evaluated against.  It is frozen: a reload builds a
new snapshot (and a new composition root) rather than mutating this one.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Lifetime(str, Enum):
    """How long a resolved capability instance is shared."""

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


class SelectionMode(str, Enum):
    """Policy applied when several providers claim the same configuration."""

    FIRST_MATCH = "first_match"
    WARN = "warn"
    STRICT = "strict"


class _BackendOptions(BaseModel):
    """Common shape of a backend settings group: a ``type`` discriminator."""

    model_config = ConfigDict(frozen=True)

    type: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, v: str | None) -> str:
        if v is None:
            return ""
        return str(v).strip().lower()

    def is_type(self, *names: str) -> bool:
        """Return True if ``type`` matches any of *names* (case-insensitive)."""
        return self.type in {n.lower() for n in names}


class DatabaseOptions(_BackendOptions):
    type: str = "sqlite"
    connection_string: str = "sqlite+aiosqlite:///pkgfeed.db"
    pool_size: int = 10
    max_overflow: int = 20


class StorageOptions(_BackendOptions):
    type: str = "filesystem"
    path: Path | None = Path("packages")

    # AWS S3 (and S3-compatible) object storage.
    bucket: str = ""
    prefix: str = ""
    region: str = ""
    service_url: str = ""
    access_key: str = ""
    secret_key: SecretStr = SecretStr("")
    use_instance_profile: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def _blank_path_is_unset(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SearchOptions(_BackendOptions):
    type: str = "database"
    endpoint: str = ""
    api_key: SecretStr = SecretStr("")
    index_name: str = "packages"
    timeout: float = 10.0


class FeedSettings(BaseSettings):
    """Package feed settings loaded from environment variables with ``FEED_`` prefix.

    Nested groups use ``__`` as delimiter, e.g. ``FEED_STORAGE__TYPE=filesystem``
    or ``FEED_DATABASE__CONNECTION_STRING=postgresql+asyncpg://...``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    debug: bool = False

    database: DatabaseOptions = DatabaseOptions()
    storage: StorageOptions = StorageOptions()
    search: SearchOptions = SearchOptions()

    # Ambiguity handling when more than one provider applies.
    provider_selection: SelectionMode = SelectionMode.FIRST_MATCH

    # Per-capability lifetime overrides, keyed by capability value
    # (e.g. {"storage": "singleton"}).
    lifetimes: dict[str, Lifetime] = {}

    @field_validator("lifetimes", mode="before")
    @classmethod
    def _normalise_lifetime_keys(cls, v: dict[str, str] | None) -> dict[str, str]:
        if not v:
            return {}
        return {str(k).strip().lower(): val for k, val in v.items()}


def load_settings(**overrides: object) -> FeedSettings:
    """Load settings from environment, with optional overrides for testing."""
    settings = FeedSettings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info(
            "Loaded feed settings (database=%s, storage=%s, search=%s)",
            settings.database.type,
            settings.storage.type,
            settings.search.type,
        )

    return settings
