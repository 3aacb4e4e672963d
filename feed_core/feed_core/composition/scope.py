"""Lifetime management for resolved capabilities.

:class:`CompositionRoot` is one resolution context: a validated settings
snapshot, a sealed registry and the process-wide singleton cache.  Each unit
of work (typically one HTTP request) opens a :class:`Scope` from it::

    root = CompositionRoot(build_default_registry(), load_settings())
    async with root.create_scope() as scope:
        storage = scope.get(Capability.STORAGE)

Caching follows the capability's :class:`~feed_core.config.Lifetime`:

* ``SINGLETON`` -- built once per root and shared by every scope.
* ``SCOPED`` -- built once per scope.
* ``TRANSIENT`` -- built on every :meth:`Scope.get` call.

First construction of a cached capability is serialized per (cache,
capability), so concurrent callers wait for one build instead of racing.  A
failed or cancelled build never reaches the cache; the next call retries.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from feed_core.composition.capabilities import capability_key
from feed_core.composition.errors import LifetimeError, ScopeClosedError, capability_label
from feed_core.composition.registry import CapabilityKey, ProviderRegistry
from feed_core.composition.resolver import CapabilityResolver
from feed_core.composition.validation import validate_settings
from feed_core.config import FeedSettings, Lifetime, SelectionMode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Instance cache
# ---------------------------------------------------------------------------


class _InstanceCache:
    """Capability -> instance map with at-most-once construction."""

    def __init__(self) -> None:
        self._instances: dict[CapabilityKey, Any] = {}
        self._locks: dict[CapabilityKey, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, capability: CapabilityKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(capability)
            if lock is None:
                lock = self._locks[capability] = threading.Lock()
            return lock

    def get_or_create(self, capability: CapabilityKey, factory: Callable[[], Any]) -> Any:
        try:
            return self._instances[capability]
        except KeyError:
            pass

        with self._lock_for(capability):
            # Double-checked locking
            if capability in self._instances:
                return self._instances[capability]
            instance = factory()
            self._instances[capability] = instance
            return instance

    def __contains__(self, capability: object) -> bool:
        return capability in self._instances

    def clear(self) -> None:
        with self._guard:
            self._instances.clear()


# ---------------------------------------------------------------------------
# Disposal
# ---------------------------------------------------------------------------


class _Disposables:
    """Instances owned by a scope or root, disposed in reverse build order."""

    def __init__(self) -> None:
        self._items: list[tuple[str, Any]] = []
        self._lock = threading.Lock()

    def track(self, label: str, instance: Any) -> None:
        if hasattr(instance, "aclose") or hasattr(instance, "close"):
            with self._lock:
                self._items.append((label, instance))

    def _drain(self) -> list[tuple[str, Any]]:
        with self._lock:
            items, self._items = self._items, []
        items.reverse()
        return items

    def close(self) -> None:
        first_error: Exception | None = None
        for label, instance in self._drain():
            close = getattr(instance, "close", None)
            if close is None:
                logger.warning("%s only supports async disposal; use aclose()", label)
                continue
            try:
                result = close()
                if inspect.isawaitable(result):
                    logger.warning("%s.close() is a coroutine; use aclose() to dispose it", label)
                    if inspect.iscoroutine(result):
                        result.close()
            except Exception as exc:
                logger.error("Failed to dispose %s: %s", label, exc, exc_info=True)
                first_error = first_error or exc
        if first_error is not None:
            raise first_error

    async def aclose(self) -> None:
        first_error: Exception | None = None
        for label, instance in self._drain():
            try:
                aclose = getattr(instance, "aclose", None)
                result = aclose() if aclose is not None else instance.close()
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.error("Failed to dispose %s: %s", label, exc, exc_info=True)
                first_error = first_error or exc
        if first_error is not None:
            raise first_error


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


class CompositionRoot:
    """One resolution context: settings, sealed registry and singletons.

    Construction seals the registry and validates *settings* and the
    effective lifetimes against it as a whole; a
    :class:`ConfigurationValidationError` here means nothing can be resolved.
    A singleton whose selected provider depends, directly or through other
    capabilities, on a scoped capability is one such error.

    Parameters
    ----------
    registry:
        Fully populated provider registry.
    settings:
        Configuration snapshot.  Never modified.
    lifetimes:
        Per-capability lifetime overrides, applied on top of the registry
        defaults and ``settings.lifetimes``.
    mode:
        Ambiguity policy; defaults to ``settings.provider_selection``.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        settings: FeedSettings,
        lifetimes: Mapping[CapabilityKey, Lifetime] | None = None,
        mode: SelectionMode | None = None,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._resolver = CapabilityResolver(registry, mode or settings.provider_selection)
        self._explicit_lifetimes = dict(lifetimes or {})

        registry.seal()
        self._lifetimes = self._effective_lifetimes()
        validate_settings(registry, settings, self._resolver.mode, self._lifetimes)

        self._singletons = _InstanceCache()
        self._disposables = _Disposables()
        self._closed = False

    def _effective_lifetimes(self) -> dict[CapabilityKey, Lifetime]:
        effective = {c: self._registry.lifetime_for(c) for c in self._registry.capabilities()}
        known = set(effective)
        for name, lifetime in self._settings.lifetimes.items():
            key = capability_key(name)
            if key not in known:
                logger.warning("Ignoring lifetime override for unknown capability '%s'", name)
                continue
            effective[key] = lifetime
        for capability, lifetime in self._explicit_lifetimes.items():
            effective[capability_key(capability)] = Lifetime(lifetime)
        return effective

    # -- Accessors ------------------------------------------------------------

    @property
    def settings(self) -> FeedSettings:
        return self._settings

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def resolver(self) -> CapabilityResolver:
        return self._resolver

    @property
    def closed(self) -> bool:
        return self._closed

    def lifetime_for(self, capability: CapabilityKey) -> Lifetime:
        """Return the effective lifetime of *capability* for this root."""
        return self._lifetimes.get(capability_key(capability), Lifetime.TRANSIENT)

    def describe(self) -> dict[str, dict[str, str]]:
        """Report the selected provider and lifetime per capability.

        Selection only; nothing is constructed.
        """
        report: dict[str, dict[str, str]] = {}
        for capability in self._registry.capabilities():
            provider = self._resolver.select(capability, self._settings)
            report[capability_label(capability)] = {
                "provider": provider.name,
                "lifetime": self.lifetime_for(capability).value,
            }
        return report

    # -- Resolution -----------------------------------------------------------

    def create_scope(self) -> Scope:
        """Open a new unit-of-work scope."""
        if self._closed:
            raise ScopeClosedError("Composition root is closed")
        return Scope(self)

    def get(self, capability: CapabilityKey) -> Any:
        """Return a singleton (or a transient built outside any scope).

        Raises
        ------
        LifetimeError
            If *capability* is scoped; scoped capabilities need a :class:`Scope`.
        """
        if self._closed:
            raise ScopeClosedError("Composition root is closed")
        key = capability_key(capability)
        lifetime = self.lifetime_for(key)
        if lifetime is Lifetime.SCOPED:
            raise LifetimeError(
                f"Capability '{capability_label(key)}' is scoped and must be resolved from a Scope, "
                f"not from the composition root"
            )
        if lifetime is Lifetime.SINGLETON:
            return self._singletons.get_or_create(key, lambda: self._build(key))
        return self._build(key)

    def _build(self, key: CapabilityKey) -> Any:
        instance = self._resolver.resolve(key, self._settings, self.get)
        self._disposables.track(capability_label(key), instance)
        return instance

    # -- Reload / disposal ----------------------------------------------------

    def reload(self, settings: FeedSettings) -> CompositionRoot:
        """Return a new root for *settings* sharing this root's registry.

        This root is left untouched; callers close it once in-flight scopes
        have finished.
        """
        return CompositionRoot(self._registry, settings, self._explicit_lifetimes, self._resolver.mode)

    def close(self) -> None:
        """Dispose every singleton synchronously."""
        self._closed = True
        self._singletons.clear()
        self._disposables.close()

    async def aclose(self) -> None:
        """Dispose every singleton, awaiting async ``aclose()`` methods."""
        self._closed = True
        self._singletons.clear()
        await self._disposables.aclose()


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class Scope:
    """A unit-of-work boundary controlling instance sharing.

    Not created directly; use :meth:`CompositionRoot.create_scope`.
    """

    def __init__(self, root: CompositionRoot) -> None:
        self._root = root
        self._cache = _InstanceCache()
        self._disposables = _Disposables()
        self._closed = False

    @property
    def root(self) -> CompositionRoot:
        return self._root

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, capability: CapabilityKey) -> Any:
        """Return the active implementation of *capability* for this scope.

        Raises
        ------
        ScopeClosedError
            If the scope has been closed.
        NoProviderError, AmbiguousProviderError, ProviderConstructionError
            From resolution.  Failures are not cached.
        """
        if self._closed:
            raise ScopeClosedError("Scope is closed")
        key = capability_key(capability)
        lifetime = self._root.lifetime_for(key)
        if lifetime is Lifetime.SINGLETON:
            return self._root.get(key)
        if lifetime is Lifetime.SCOPED:
            return self._cache.get_or_create(key, lambda: self._build(key))
        return self._build(key)

    def _build(self, key: CapabilityKey) -> Any:
        instance = self._root.resolver.resolve(key, self._root.settings, self.get)
        self._disposables.track(capability_label(key), instance)
        return instance

    def close(self) -> None:
        """Dispose instances built by this scope, newest first."""
        self._closed = True
        self._cache.clear()
        self._disposables.close()

    async def aclose(self) -> None:
        """Dispose instances built by this scope, awaiting async disposal."""
        self._closed = True
        self._cache.clear()
        await self._disposables.aclose()

    def __enter__(self) -> Scope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> Scope:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
