"""Exceptions raised while registering, validating and resolving capabilities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


def capability_label(capability: object) -> str:
    """Return the display name of a capability key."""
    if isinstance(capability, Enum):
        return str(capability.value)
    return str(capability)


@dataclass(frozen=True)
class ValidationIssue:
    """A single configuration problem reported by the validation pass."""

    capability: str
    provider: str | None
    setting: str | None
    message: str

    def __str__(self) -> str:
        where = self.setting or self.capability
        source = f" [{self.provider}]" if self.provider else ""
        return f"{where}{source}: {self.message}"


class CompositionError(Exception):
    """Base class for every capability composition failure."""


class RegistrationError(CompositionError):
    """Raised when a provider cannot be registered."""


class RegistrationOrderError(RegistrationError):
    """Raised when a provider is registered after resolution has begun."""


class DependencyCycleError(RegistrationError):
    """Raised when providers' required capabilities form a cycle.

    Attributes
    ----------
    cycle:
        Capability names forming the loop, e.g. ``["search", "storage"]``
        means search -> storage -> search.
    """

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        formatted = " -> ".join(cycle + cycle[:1])
        super().__init__(f"Cyclic capability dependencies detected: {formatted}")


class ConfigurationValidationError(CompositionError):
    """Raised when the configuration snapshot fails provider preconditions.

    All issues found in one pass are carried together so that a
    misconfigured deployment is reported in full on the first failure.
    """

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"Invalid feed configuration ({len(self.issues)} issue(s)):\n{lines}")

    @property
    def settings(self) -> list[str]:
        """Names of the offending settings, in report order."""
        return [i.setting for i in self.issues if i.setting]


class NoProviderError(CompositionError):
    """Raised when no registered provider applies to the configuration."""

    def __init__(self, capability: object, considered: list[str]) -> None:
        self.capability = capability_label(capability)
        self.considered = list(considered)
        tried = ", ".join(self.considered) if self.considered else "none registered"
        super().__init__(f"No backend configured for capability '{self.capability}' (providers considered: {tried})")


class AmbiguousProviderError(CompositionError):
    """Raised in strict mode when several providers apply at once."""

    def __init__(self, capability: object, applicable: list[str]) -> None:
        self.capability = capability_label(capability)
        self.applicable = list(applicable)
        super().__init__(
            f"Ambiguous backend selection for capability '{self.capability}': "
            f"{', '.join(self.applicable)} all apply to the current configuration"
        )


class ProviderConstructionError(CompositionError):
    """Raised when the selected provider's factory fails.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, capability: object, provider: str, reason: str) -> None:
        self.capability = capability_label(capability)
        self.provider = provider
        super().__init__(f"Provider '{provider}' failed to build capability '{self.capability}': {reason}")


class LifetimeError(CompositionError):
    """Raised when a capability is requested outside a suitable scope."""


class ScopeClosedError(CompositionError):
    """Raised when a scope is used after it has been closed."""
