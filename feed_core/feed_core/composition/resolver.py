"""Capability resolver: picks and builds the active provider for a capability.

Selection is **first-match-wins** over registration order.  Two providers
that both apply to the same configuration are not an error by default; the
earlier-registered one is used.  :class:`~feed_core.config.SelectionMode`
makes ambiguity visible:

* ``FIRST_MATCH`` -- stop at the first applicable provider.
* ``WARN`` -- keep the first match but log every applicable provider.
* ``STRICT`` -- raise :class:`AmbiguousProviderError`.

Only the selected provider's factory ever runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from feed_core.composition.capabilities import capability_key
from feed_core.composition.errors import (
    AmbiguousProviderError,
    NoProviderError,
    ProviderConstructionError,
    capability_label,
)
from feed_core.composition.provider import CapabilityProvider, Dependencies
from feed_core.composition.registry import CapabilityKey, ProviderRegistry
from feed_core.config import FeedSettings, SelectionMode

logger = logging.getLogger(__name__)


class CapabilityResolver:
    """Resolve capabilities against a :class:`ProviderRegistry`."""

    def __init__(self, registry: ProviderRegistry, mode: SelectionMode = SelectionMode.FIRST_MATCH) -> None:
        self._registry = registry
        self._mode = SelectionMode(mode)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def mode(self) -> SelectionMode:
        return self._mode

    def select(self, capability: CapabilityKey, settings: FeedSettings) -> CapabilityProvider:
        """Return the provider that applies to *settings*, without building it.

        Raises
        ------
        NoProviderError
            If no registered provider applies.
        AmbiguousProviderError
            In ``STRICT`` mode, if more than one provider applies.
        """
        providers = self._registry.providers_for(capability)
        label = capability_label(capability_key(capability))

        selected: CapabilityProvider | None = None
        applicable: list[str] = []
        for provider in providers:
            if not provider.is_active(settings):
                continue
            applicable.append(provider.name)
            if selected is None:
                selected = provider
                if self._mode is SelectionMode.FIRST_MATCH:
                    break

        if selected is None:
            raise NoProviderError(capability_key(capability), [p.name for p in providers])

        if len(applicable) > 1:
            if self._mode is SelectionMode.STRICT:
                raise AmbiguousProviderError(capability_key(capability), applicable)
            logger.warning(
                "Several providers apply to %s (%s); using %s by registration order",
                label,
                ", ".join(applicable),
                selected.name,
            )

        return selected

    def resolve(
        self,
        capability: CapabilityKey,
        settings: FeedSettings,
        dependencies: Dependencies | Callable[[CapabilityKey], Any] | None = None,
    ) -> Any:
        """Select the applicable provider and build the implementation.

        Parameters
        ----------
        capability:
            The capability to resolve.
        settings:
            The validated configuration snapshot.
        dependencies:
            Already-resolved instances of the provider's required capabilities,
            or a callable returning the instance for one required capability.
            The callable is only invoked for the selected provider's
            ``requires``, after selection.

        Raises
        ------
        NoProviderError, AmbiguousProviderError
            From :meth:`select`.
        ProviderConstructionError
            If the selected factory raises.  The factory's exception is
            chained as ``__cause__``.  Non-``Exception`` signals such as
            ``asyncio.CancelledError`` propagate unchanged.
        """
        self._registry.mark_resolved(capability)
        provider = self.select(capability, settings)
        label = capability_label(capability_key(capability))

        resolved = self._dependencies_for(provider, dependencies)

        logger.debug("Building %s with provider %s", label, provider.name)
        try:
            return provider.build(settings, resolved)
        except Exception as exc:
            logger.error("Provider %s failed to build %s: %s", provider.name, label, exc, exc_info=True)
            raise ProviderConstructionError(capability, provider.name, str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _dependencies_for(
        provider: CapabilityProvider,
        dependencies: Dependencies | Callable[[CapabilityKey], Any] | None,
    ) -> Dependencies:
        if dependencies is None:
            return {}
        if isinstance(dependencies, Mapping):
            return dependencies
        return {capability_key(required): dependencies(required) for required in provider.requires}
