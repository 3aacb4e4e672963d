"""Provider registry for the swappable feed subsystems.

Holds, per capability, the ordered list of candidate providers plus the
declared default lifetime.  Registration order is priority order: when more
than one provider applies to a configuration, the earliest registered wins.

The registry owns no implementation instances.  It is populated once during
process start-up and is read-only afterwards; registering a provider after
its capability has been resolved (or after :meth:`ProviderRegistry.seal`) is
rejected with :class:`RegistrationOrderError`.
"""

from __future__ import annotations

import logging
import threading

import networkx as nx

from feed_core.composition.capabilities import Capability, capability_key
from feed_core.composition.errors import (
    DependencyCycleError,
    RegistrationError,
    RegistrationOrderError,
    capability_label,
)
from feed_core.composition.provider import CapabilityProvider
from feed_core.config import Lifetime

logger = logging.getLogger(__name__)

CapabilityKey = Capability | str


class ProviderRegistry:
    """Ordered registry of :class:`CapabilityProvider` objects.

    The :class:`~feed_core.composition.resolver.CapabilityResolver` and
    :class:`~feed_core.composition.scope.CompositionRoot` read from it; only
    start-up code writes to it.
    """

    def __init__(self) -> None:
        self._providers: dict[CapabilityKey, list[CapabilityProvider]] = {}
        self._lifetimes: dict[CapabilityKey, Lifetime] = {}
        self._resolved: set[CapabilityKey] = set()
        self._sealed = False
        self._lock = threading.Lock()

    # -- Registration ---------------------------------------------------------

    def register(
        self,
        capability_or_provider: CapabilityKey | CapabilityProvider,
        provider: CapabilityProvider | None = None,
    ) -> CapabilityProvider:
        """Append a provider to its capability's ordered list.

        Accepts either ``register(provider)`` or ``register(capability,
        provider)``; in the second form the capability must match the
        provider's own.

        Raises
        ------
        RegistrationOrderError
            If the capability has already been resolved or the registry is sealed.
        RegistrationError
            If a provider with the same name is already registered for the
            capability, or the capability arguments disagree.
        """
        if provider is None:
            if not isinstance(capability_or_provider, CapabilityProvider):
                raise RegistrationError("register() needs a provider")
            provider = capability_or_provider
        elif capability_key(provider.capability) != capability_key(capability_or_provider):
            raise RegistrationError(
                f"Provider '{provider.name}' belongs to capability "
                f"'{capability_label(provider.capability)}', not "
                f"'{capability_label(capability_or_provider)}'"
            )

        capability = capability_key(provider.capability)
        label = capability_label(capability)
        if not provider.name:
            raise RegistrationError(f"Provider for capability '{label}' has no name")

        with self._lock:
            self._check_writable(capability)
            existing = self._providers.setdefault(capability, [])
            if any(p.name == provider.name for p in existing):
                raise RegistrationError(f"Provider '{provider.name}' is already registered for capability '{label}'")
            existing.append(provider)

        logger.debug("Registered provider %s for %s (priority %d)", provider.name, label, len(existing))
        return provider

    def set_lifetime(self, capability: CapabilityKey, lifetime: Lifetime) -> None:
        """Declare the default lifetime of *capability*."""
        capability = capability_key(capability)
        with self._lock:
            self._check_writable(capability)
            self._lifetimes[capability] = Lifetime(lifetime)

    def _check_writable(self, capability: CapabilityKey) -> None:
        label = capability_label(capability)
        if self._sealed:
            raise RegistrationOrderError(f"Registry is sealed; cannot change capability '{label}'")
        if capability in self._resolved:
            raise RegistrationOrderError(f"Capability '{label}' has already been resolved; register providers first")

    # -- Lookup ---------------------------------------------------------------

    def providers_for(self, capability: CapabilityKey) -> tuple[CapabilityProvider, ...]:
        """Return the providers of *capability* in registration order."""
        return tuple(self._providers.get(capability_key(capability), ()))

    def lifetime_for(self, capability: CapabilityKey) -> Lifetime:
        """Return the declared lifetime, ``TRANSIENT`` if none was declared."""
        return self._lifetimes.get(capability_key(capability), Lifetime.TRANSIENT)

    def capabilities(self) -> list[CapabilityKey]:
        """Return every capability with at least one provider, in first-registration order."""
        return [c for c, providers in self._providers.items() if providers]

    # -- Lifecycle ------------------------------------------------------------

    def mark_resolved(self, capability: CapabilityKey) -> None:
        """Record that *capability* has been resolved; closes it to registration."""
        capability = capability_key(capability)
        if capability in self._resolved:
            return
        with self._lock:
            self._resolved.add(capability)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Freeze the registry after checking the dependency graph for cycles.

        Idempotent.

        Raises
        ------
        DependencyCycleError
            If the providers' required capabilities form a cycle.
        """
        if self._sealed:
            return
        cycles = list(nx.simple_cycles(self.dependency_graph()))
        if cycles:
            raise DependencyCycleError(list(cycles[0]))
        with self._lock:
            self._sealed = True
        logger.debug("Provider registry sealed with %d capability(ies)", len(self.capabilities()))

    def dependency_graph(self) -> nx.DiGraph:
        """Build a directed graph ``capability -> required capability``.

        The edges are the union over every registered provider, so the graph
        is conservative: it includes requirements of providers that may never
        be selected.
        """
        graph = nx.DiGraph()
        for capability, providers in self._providers.items():
            label = capability_label(capability)
            graph.add_node(label)
            for provider in providers:
                for required in provider.requires:
                    graph.add_edge(label, capability_label(required))
        return graph

    def __len__(self) -> int:
        return sum(len(p) for p in self._providers.values())

    def __contains__(self, capability: object) -> bool:
        if not isinstance(capability, str):
            return False
        return bool(self._providers.get(capability_key(capability)))
