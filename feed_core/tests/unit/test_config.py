"""Unit tests for feed_core.config."""

from __future__ import annotations

from pathlib import Path

import pytest
from feed_core.config import (
    DatabaseOptions,
    FeedSettings,
    Lifetime,
    SearchOptions,
    SelectionMode,
    StorageOptions,
    load_settings,
)
from pydantic import SecretStr, ValidationError

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestFeedSettingsDefaults:
    def test_default_database(self):
        settings = FeedSettings()
        assert settings.database.type == "sqlite"
        assert settings.database.connection_string.startswith("sqlite+aiosqlite://")
        assert settings.database.pool_size == 10

    def test_default_storage(self):
        settings = FeedSettings()
        assert settings.storage.type == "filesystem"
        assert settings.storage.path == Path("packages")

    def test_default_search(self):
        settings = FeedSettings()
        assert settings.search.type == "database"
        assert settings.search.endpoint == ""
        assert settings.search.api_key.get_secret_value() == ""

    def test_default_selection_mode(self):
        assert FeedSettings().provider_selection == SelectionMode.FIRST_MATCH

    def test_default_lifetimes_empty(self):
        assert FeedSettings().lifetimes == {}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


class TestBackendOptions:
    def test_type_lowercased_and_stripped(self):
        assert StorageOptions(type="  FileSystem ").type == "filesystem"

    def test_none_type_becomes_empty(self):
        assert SearchOptions(type=None).type == ""

    def test_is_type_matches_any_name(self):
        options = DatabaseOptions(type="postgres")
        assert options.is_type("postgresql", "postgres")
        assert not options.is_type("sqlite")

    def test_is_type_case_insensitive_names(self):
        assert DatabaseOptions(type="mysql").is_type("MySQL")

    def test_blank_storage_path_is_unset(self):
        assert StorageOptions(path="   ").path is None

    def test_storage_path_kept(self, tmp_path: Path):
        assert StorageOptions(path=str(tmp_path)).path == tmp_path

    def test_api_key_is_secret(self):
        options = SearchOptions(api_key="s3cret")
        assert isinstance(options.api_key, SecretStr)
        assert "s3cret" not in repr(options)


class TestLifetimes:
    def test_keys_normalised(self):
        settings = FeedSettings(lifetimes={" Storage ": "singleton"})
        assert settings.lifetimes == {"storage": Lifetime.SINGLETON}

    def test_invalid_lifetime_rejected(self):
        with pytest.raises(ValidationError):
            FeedSettings(lifetimes={"storage": "forever"})


# ---------------------------------------------------------------------------
# Immutability
# ---------------------------------------------------------------------------


class TestFrozen:
    def test_settings_frozen(self):
        settings = FeedSettings()
        with pytest.raises(ValidationError):
            settings.debug = True  # type: ignore[misc]

    def test_nested_options_frozen(self):
        settings = FeedSettings()
        with pytest.raises(ValidationError):
            settings.storage.type = "blob"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------


class TestEnvironment:
    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FEED_SEARCH__TYPE", "HTTP")
        monkeypatch.setenv("FEED_SEARCH__ENDPOINT", "https://search.example.com")
        settings = FeedSettings()
        assert settings.search.type == "http"
        assert settings.search.endpoint == "https://search.example.com"
        assert settings.search.index_name == "packages"

    def test_selection_mode_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FEED_PROVIDER_SELECTION", "strict")
        assert FeedSettings().provider_selection == SelectionMode.STRICT

    def test_lifetimes_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FEED_LIFETIMES", '{"search": "scoped"}')
        assert FeedSettings().lifetimes == {"search": Lifetime.SCOPED}

    def test_invalid_value_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("FEED_DATABASE__POOL_SIZE", "lots")
        with pytest.raises(ValidationError):
            FeedSettings()


class TestLoadSettings:
    def test_overrides(self):
        settings = load_settings(debug=True, storage={"type": "file"})
        assert settings.debug is True
        assert settings.storage.type == "file"

    def test_returns_new_snapshot(self):
        assert load_settings() is not load_settings()
