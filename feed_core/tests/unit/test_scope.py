"""Unit tests for feed_core.composition.scope (lifetime management)."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from feed_core.composition import (
    Capability,
    CompositionRoot,
    ConfigurationValidationError,
    FunctionProvider,
    Lifetime,
    LifetimeError,
    ProviderConstructionError,
    ProviderRegistry,
    ScopeClosedError,
)
from feed_core.config import FeedSettings


class Thing:
    """Minimal resolved instance with a disposal hook."""

    def __init__(self, name: str = "thing", events: list[str] | None = None) -> None:
        self.name = name
        self.events = events if events is not None else []
        self.closed = False

    def close(self) -> None:
        self.closed = True
        self.events.append(f"close:{self.name}")


class AsyncThing(Thing):
    async def aclose(self) -> None:
        self.closed = True
        self.events.append(f"aclose:{self.name}")


def _registry(lifetime: Lifetime, factory=None, capability=Capability.STORAGE) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.set_lifetime(capability, lifetime)
    registry.register(
        FunctionProvider(
            capability,
            "fake",
            predicate=lambda s: True,
            factory=factory or (lambda s, deps: Thing()),
        )
    )
    return registry


# ---------------------------------------------------------------------------
# Lifetimes
# ---------------------------------------------------------------------------


class TestLifetimes:
    def test_scoped_stable_within_scope(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        with root.create_scope() as scope:
            assert scope.get(Capability.STORAGE) is scope.get("storage")

    def test_scoped_not_shared_across_scopes(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        with root.create_scope() as first, root.create_scope() as second:
            assert first.get(Capability.STORAGE) is not second.get(Capability.STORAGE)

    def test_transient_rebuilt_each_call(self):
        factory = MagicMock(side_effect=lambda s, deps: Thing())
        root = CompositionRoot(_registry(Lifetime.TRANSIENT, factory), FeedSettings())
        with root.create_scope() as scope:
            assert scope.get(Capability.STORAGE) is not scope.get(Capability.STORAGE)
        assert factory.call_count == 2

    def test_singleton_shared_across_scopes(self):
        root = CompositionRoot(_registry(Lifetime.SINGLETON), FeedSettings())
        with root.create_scope() as first, root.create_scope() as second:
            assert first.get(Capability.STORAGE) is second.get(Capability.STORAGE)
        assert root.get(Capability.STORAGE) is root.get(Capability.STORAGE)

    def test_scoped_from_root_rejected(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        with pytest.raises(LifetimeError, match="scoped"):
            root.get(Capability.STORAGE)

    def test_resolution_is_lazy(self):
        factory = MagicMock(side_effect=lambda s, deps: Thing())
        root = CompositionRoot(_registry(Lifetime.SINGLETON, factory), FeedSettings())
        root.create_scope()
        factory.assert_not_called()


class TestLifetimeConfiguration:
    def test_settings_override_registry_default(self):
        root = CompositionRoot(
            _registry(Lifetime.TRANSIENT),
            FeedSettings(lifetimes={"storage": "singleton"}),
        )
        assert root.lifetime_for(Capability.STORAGE) is Lifetime.SINGLETON

    def test_explicit_override_wins(self):
        root = CompositionRoot(
            _registry(Lifetime.TRANSIENT),
            FeedSettings(lifetimes={"storage": "singleton"}),
            lifetimes={Capability.STORAGE: Lifetime.SCOPED},
        )
        assert root.lifetime_for("storage") is Lifetime.SCOPED

    def test_unknown_capability_override_ignored(self, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="feed_core.composition.scope"):
            root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings(lifetimes={"symbols": "singleton"}))
        assert "symbols" in caplog.text
        assert root.lifetime_for(Capability.STORAGE) is Lifetime.SCOPED


# ---------------------------------------------------------------------------
# Dependencies between capabilities
# ---------------------------------------------------------------------------


class TestDependencies:
    def _registry(self, catalog_lifetime: Lifetime = Lifetime.TRANSIENT) -> ProviderRegistry:
        registry = ProviderRegistry()
        registry.set_lifetime(Capability.DATABASE_CONTEXT, Lifetime.SCOPED)
        registry.set_lifetime(Capability.PACKAGE_DATABASE, catalog_lifetime)
        registry.register(
            FunctionProvider(
                Capability.DATABASE_CONTEXT,
                "sqlite",
                predicate=lambda s: True,
                factory=lambda s, deps: Thing("context"),
            )
        )
        registry.register(
            FunctionProvider(
                Capability.PACKAGE_DATABASE,
                "sql",
                predicate=lambda s: True,
                factory=lambda s, deps: ("catalog", deps[Capability.DATABASE_CONTEXT]),
                requires=[Capability.DATABASE_CONTEXT],
            )
        )
        return registry

    def test_transient_shares_scoped_dependency(self):
        root = CompositionRoot(self._registry(), FeedSettings())
        with root.create_scope() as scope:
            first = scope.get(Capability.PACKAGE_DATABASE)
            second = scope.get(Capability.PACKAGE_DATABASE)
            assert first is not second
            assert first[1] is second[1] is scope.get(Capability.DATABASE_CONTEXT)

    def test_singleton_over_scoped_dependency_rejected_at_startup(self):
        with pytest.raises(ConfigurationValidationError) as exc_info:
            CompositionRoot(self._registry(Lifetime.SINGLETON), FeedSettings())

        (issue,) = exc_info.value.issues
        assert issue.capability == "package_database"
        assert issue.provider == "sql"
        assert issue.setting == "lifetimes"
        assert "database_context" in issue.message

    def test_singleton_lifetime_override_rejected_at_startup(self):
        with pytest.raises(ConfigurationValidationError) as exc_info:
            CompositionRoot(self._registry(), FeedSettings(lifetimes={"package_database": "singleton"}))
        assert exc_info.value.settings == ["lifetimes"]

    def test_singleton_reaching_scoped_through_transient_rejected(self):
        registry = self._registry()
        registry.set_lifetime(Capability.SEARCH, Lifetime.SINGLETON)
        registry.register(
            FunctionProvider(
                Capability.SEARCH,
                "database",
                predicate=lambda s: True,
                factory=lambda s, deps: Thing("search"),
                requires=[Capability.PACKAGE_DATABASE],
            )
        )
        with pytest.raises(ConfigurationValidationError) as exc_info:
            CompositionRoot(registry, FeedSettings())

        (issue,) = exc_info.value.issues
        assert issue.capability == "search"
        assert "search -> package_database -> database_context" in issue.message

    def test_explicit_scoped_override_accepted(self):
        root = CompositionRoot(
            self._registry(Lifetime.SINGLETON),
            FeedSettings(),
            lifetimes={Capability.PACKAGE_DATABASE: Lifetime.SCOPED},
        )
        with root.create_scope() as scope:
            assert scope.get(Capability.PACKAGE_DATABASE)[0] == "catalog"

    def test_transient_from_root_cannot_capture_scoped_dependency(self):
        root = CompositionRoot(self._registry(), FeedSettings())
        with pytest.raises(LifetimeError):
            root.get(Capability.PACKAGE_DATABASE)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_failure_not_cached(self):
        attempts = []

        def _flaky(settings, deps):
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectionError("first attempt fails")
            return Thing()

        root = CompositionRoot(_registry(Lifetime.SCOPED, _flaky), FeedSettings())
        with root.create_scope() as scope:
            with pytest.raises(ProviderConstructionError):
                scope.get(Capability.STORAGE)
            instance = scope.get(Capability.STORAGE)
            assert scope.get(Capability.STORAGE) is instance
        assert len(attempts) == 2

    def test_cancelled_construction_not_cached(self):
        attempts = []

        def _cancelled_once(settings, deps):
            attempts.append(1)
            if len(attempts) == 1:
                raise asyncio.CancelledError()
            return Thing()

        root = CompositionRoot(_registry(Lifetime.SINGLETON, _cancelled_once), FeedSettings())
        with pytest.raises(asyncio.CancelledError):
            root.get(Capability.STORAGE)
        assert isinstance(root.get(Capability.STORAGE), Thing)

    def test_failure_in_one_scope_does_not_affect_another(self):
        calls = []

        def _factory(settings, deps):
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionError("boom")
            return Thing()

        root = CompositionRoot(_registry(Lifetime.SCOPED, _factory), FeedSettings())
        broken = root.create_scope()
        with pytest.raises(ProviderConstructionError):
            broken.get(Capability.STORAGE)
        with root.create_scope() as healthy:
            assert isinstance(healthy.get(Capability.STORAGE), Thing)

    def test_invalid_configuration_blocks_root(self):
        registry = ProviderRegistry()
        registry.register(
            FunctionProvider(
                Capability.STORAGE,
                "file",
                predicate=lambda s: True,
                factory=lambda s, deps: Thing(),
                validator=lambda s: [],
            )
        )
        registry.register(
            FunctionProvider(Capability.SEARCH, "http", predicate=lambda s: False, factory=lambda s, deps: None)
        )
        with pytest.raises(ConfigurationValidationError):
            CompositionRoot(registry, FeedSettings())


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def _slow_factory(self, calls: list[int]):
        lock = threading.Lock()

        def _factory(settings, deps):
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return Thing()

        return _factory

    def test_scoped_built_once_under_concurrent_get(self):
        calls: list[int] = []
        root = CompositionRoot(_registry(Lifetime.SCOPED, self._slow_factory(calls)), FeedSettings())
        scope = root.create_scope()

        results: list[object] = []
        barrier = threading.Barrier(10)

        def _get() -> None:
            barrier.wait()
            results.append(scope.get(Capability.STORAGE))

        threads = [threading.Thread(target=_get) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(results) == 10
        assert all(r is results[0] for r in results)

    def test_singleton_built_once_across_concurrent_scopes(self):
        calls: list[int] = []
        root = CompositionRoot(_registry(Lifetime.SINGLETON, self._slow_factory(calls)), FeedSettings())

        results: list[object] = []
        barrier = threading.Barrier(8)

        def _get() -> None:
            barrier.wait()
            with root.create_scope() as scope:
                results.append(scope.get(Capability.STORAGE))

        threads = [threading.Thread(target=_get) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_concurrent_scopes_do_not_share_scoped_instances(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        results: list[object] = []
        barrier = threading.Barrier(4)

        def _get() -> None:
            barrier.wait()
            with root.create_scope() as scope:
                results.append(scope.get(Capability.STORAGE))

        threads = [threading.Thread(target=_get) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(r) for r in results}) == 4


# ---------------------------------------------------------------------------
# Disposal
# ---------------------------------------------------------------------------


class TestDisposal:
    def test_scope_exit_disposes_instances(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        with root.create_scope() as scope:
            instance = scope.get(Capability.STORAGE)
        assert instance.closed
        assert scope.closed

    def test_disposal_in_reverse_build_order(self):
        events: list[str] = []
        names = iter(["first", "second", "third"])
        root = CompositionRoot(
            _registry(Lifetime.TRANSIENT, lambda s, deps: Thing(next(names), events)),
            FeedSettings(),
        )
        with root.create_scope() as scope:
            scope.get(Capability.STORAGE)
            scope.get(Capability.STORAGE)
            scope.get(Capability.STORAGE)
        assert events == ["close:third", "close:second", "close:first"]

    def test_singleton_outlives_scope(self):
        root = CompositionRoot(_registry(Lifetime.SINGLETON), FeedSettings())
        with root.create_scope() as scope:
            instance = scope.get(Capability.STORAGE)
        assert not instance.closed
        root.close()
        assert instance.closed

    def test_closed_scope_rejects_get(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        scope = root.create_scope()
        scope.close()
        with pytest.raises(ScopeClosedError):
            scope.get(Capability.STORAGE)

    def test_closed_root_rejects_new_scopes(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED), FeedSettings())
        root.close()
        assert root.closed
        with pytest.raises(ScopeClosedError):
            root.create_scope()

    def test_disposal_error_reraised_after_all_disposed(self):
        events: list[str] = []

        class Broken(Thing):
            def close(self) -> None:
                raise OSError("handle already gone")

        built = iter([Thing("a", events), Broken("b", events), Thing("c", events)])
        root = CompositionRoot(_registry(Lifetime.TRANSIENT, lambda s, deps: next(built)), FeedSettings())
        scope = root.create_scope()
        for _ in range(3):
            scope.get(Capability.STORAGE)

        with pytest.raises(OSError, match="handle already gone"):
            scope.close()
        assert events == ["close:c", "close:a"]

    def test_instances_without_close_not_tracked(self):
        root = CompositionRoot(_registry(Lifetime.SCOPED, lambda s, deps: object()), FeedSettings())
        with root.create_scope() as scope:
            scope.get(Capability.STORAGE)

    @pytest.mark.asyncio
    async def test_async_scope_prefers_aclose(self):
        events: list[str] = []
        root = CompositionRoot(_registry(Lifetime.SCOPED, lambda s, deps: AsyncThing("x", events)), FeedSettings())
        async with root.create_scope() as scope:
            scope.get(Capability.STORAGE)
        assert events == ["aclose:x"]

    @pytest.mark.asyncio
    async def test_root_aclose_awaits_singletons(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        root = CompositionRoot(_registry(Lifetime.SINGLETON, lambda s, deps: client), FeedSettings())
        root.get(Capability.STORAGE)

        await root.aclose()

        client.aclose.assert_awaited_once()


# ---------------------------------------------------------------------------
# Reload
# ---------------------------------------------------------------------------


class TestReload:
    def _registry(self) -> ProviderRegistry:
        registry = ProviderRegistry()
        registry.set_lifetime(Capability.STORAGE, Lifetime.SINGLETON)
        registry.register(
            FunctionProvider(
                Capability.STORAGE,
                "file",
                predicate=lambda s: s.storage.type == "file",
                factory=lambda s, deps: Thing("file"),
            )
        )
        registry.register(
            FunctionProvider(
                Capability.STORAGE,
                "blob",
                predicate=lambda s: s.storage.type == "blob",
                factory=lambda s, deps: Thing("blob"),
            )
        )
        return registry

    def test_reload_builds_new_context(self):
        old_settings = FeedSettings(storage={"type": "file"})
        root = CompositionRoot(self._registry(), old_settings)
        before = root.get(Capability.STORAGE)

        reloaded = root.reload(FeedSettings(storage={"type": "blob"}))

        assert reloaded is not root
        assert reloaded.get(Capability.STORAGE).name == "blob"
        assert root.get(Capability.STORAGE) is before
        assert root.settings is old_settings
        assert old_settings.storage.type == "file"

    def test_reload_validates(self):
        root = CompositionRoot(self._registry(), FeedSettings(storage={"type": "file"}))
        with pytest.raises(ConfigurationValidationError):
            root.reload(FeedSettings(storage={"type": "s3"}))

    def test_describe_reports_selection_without_building(self):
        root = CompositionRoot(self._registry(), FeedSettings(storage={"type": "blob"}))
        assert root.describe() == {"storage": {"provider": "blob", "lifetime": "singleton"}}
