"""Capability provider interface.

A provider pairs one implementation of a capability with the condition under
which it applies.  Providers are registered in priority order on a
:class:`~feed_core.composition.registry.ProviderRegistry`; the resolver picks
the first one whose :meth:`CapabilityProvider.is_active` returns ``True``.

``is_active`` and ``validate`` must be side-effect free: they are evaluated
for providers that are never selected.  Only :meth:`CapabilityProvider.build`
may acquire resources.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from feed_core.composition.capabilities import Capability
from feed_core.composition.errors import ValidationIssue, capability_label
from feed_core.config import FeedSettings

Dependencies = Mapping[Capability | str, Any]


class CapabilityProvider(abc.ABC):
    """Abstract base for a (capability, implementation) pair.

    Subclasses set :attr:`name` and :attr:`capability` and implement
    :meth:`is_active` and :meth:`build`.  :attr:`requires` lists the
    capabilities whose resolved instances are passed to :meth:`build`.
    """

    name: str = ""
    capability: Capability | str
    requires: tuple[Capability | str, ...] = ()

    @abc.abstractmethod
    def is_active(self, settings: FeedSettings) -> bool:
        """Return True if this provider applies to *settings*."""

    @abc.abstractmethod
    def build(self, settings: FeedSettings, dependencies: Dependencies) -> Any:
        """Construct the implementation.

        Parameters
        ----------
        settings:
            The validated configuration snapshot.
        dependencies:
            Resolved instances of every capability in :attr:`requires`.
        """

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        """Return configuration problems, assuming this provider is selected."""
        return []

    def issue(self, setting: str | None, message: str) -> ValidationIssue:
        """Build a :class:`ValidationIssue` attributed to this provider."""
        return ValidationIssue(
            capability=capability_label(self.capability),
            provider=self.name,
            setting=setting,
            message=message,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {capability_label(self.capability)}:{self.name}>"


class FunctionProvider(CapabilityProvider):
    """Provider assembled from plain callables.

    Usage::

        FunctionProvider(
            Capability.STORAGE,
            "filesystem",
            predicate=lambda s: s.storage.is_type("filesystem"),
            factory=lambda s, deps: FileStorageService(s.storage.path),
        )
    """

    def __init__(
        self,
        capability: Capability | str,
        name: str,
        predicate: Callable[[FeedSettings], bool],
        factory: Callable[[FeedSettings, Dependencies], Any],
        requires: Sequence[Capability | str] = (),
        validator: Callable[[FeedSettings], list[ValidationIssue]] | None = None,
    ) -> None:
        self.capability = capability
        self.name = name
        self.requires = tuple(requires)
        self._predicate = predicate
        self._factory = factory
        self._validator = validator

    def is_active(self, settings: FeedSettings) -> bool:
        return bool(self._predicate(settings))

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> Any:
        return self._factory(settings, dependencies)

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        if self._validator is None:
            return []
        return list(self._validator(settings))
