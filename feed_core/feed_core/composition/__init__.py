"""Pluggable-backend composition.

Several providers may implement each capability (catalog database, content
storage, search, search indexing); exactly one is selected per resolution
context from configuration, lazily, on first use.

Quick start::

    from feed_core.backends import build_default_registry
    from feed_core.composition import Capability, CompositionRoot
    from feed_core.config import load_settings

    root = CompositionRoot(build_default_registry(), load_settings())
    with root.create_scope() as scope:
        storage = scope.get(Capability.STORAGE)
"""

from feed_core.composition.capabilities import DEFAULT_LIFETIMES, Capability, capability_key
from feed_core.composition.errors import (
    AmbiguousProviderError,
    CompositionError,
    ConfigurationValidationError,
    DependencyCycleError,
    LifetimeError,
    NoProviderError,
    ProviderConstructionError,
    RegistrationError,
    RegistrationOrderError,
    ScopeClosedError,
    ValidationIssue,
)
from feed_core.composition.provider import CapabilityProvider, FunctionProvider
from feed_core.composition.registry import ProviderRegistry
from feed_core.composition.resolver import CapabilityResolver
from feed_core.composition.scope import CompositionRoot, Scope
from feed_core.composition.validation import collect_issues, validate_settings
from feed_core.config import Lifetime, SelectionMode

__all__ = [
    # Capabilities
    "Capability",
    "DEFAULT_LIFETIMES",
    "Lifetime",
    "SelectionMode",
    "capability_key",
    # Providers
    "CapabilityProvider",
    "FunctionProvider",
    "ProviderRegistry",
    # Resolution
    "CapabilityResolver",
    "CompositionRoot",
    "Scope",
    "collect_issues",
    "validate_settings",
    # Exceptions
    "AmbiguousProviderError",
    "CompositionError",
    "ConfigurationValidationError",
    "DependencyCycleError",
    "LifetimeError",
    "NoProviderError",
    "ProviderConstructionError",
    "RegistrationError",
    "RegistrationOrderError",
    "ScopeClosedError",
    "ValidationIssue",
]
