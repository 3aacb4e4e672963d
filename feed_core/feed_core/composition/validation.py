"""Whole-configuration validation pass.

Runs before any capability is resolved.  For every registered capability the
provider that *would* be selected contributes its own rules, so a deployment
that picks the HTTP search backend is checked for a search endpoint while a
deployment on database search is not.  The effective lifetimes are checked
against the selected providers' dependencies as well.  Every problem is
collected and reported together.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from feed_core.composition.capabilities import capability_key
from feed_core.composition.errors import (
    AmbiguousProviderError,
    ConfigurationValidationError,
    NoProviderError,
    ValidationIssue,
    capability_label,
)
from feed_core.composition.provider import CapabilityProvider
from feed_core.composition.registry import CapabilityKey, ProviderRegistry
from feed_core.composition.resolver import CapabilityResolver
from feed_core.config import FeedSettings, Lifetime, SelectionMode

logger = logging.getLogger(__name__)


def _configured_lifetimes(registry: ProviderRegistry, settings: FeedSettings) -> dict[CapabilityKey, Lifetime]:
    lifetimes = {c: registry.lifetime_for(c) for c in registry.capabilities()}
    for name, lifetime in settings.lifetimes.items():
        key = capability_key(name)
        if key in lifetimes:
            lifetimes[key] = lifetime
    return lifetimes


def _scoped_dependency_path(
    capability: CapabilityKey,
    selected: Mapping[CapabilityKey, CapabilityProvider],
    lifetimes: Mapping[CapabilityKey, Lifetime],
    seen: set[CapabilityKey],
) -> list[CapabilityKey] | None:
    """Return the dependency chain from *capability* to a scoped capability, if any."""
    provider = selected.get(capability)
    if provider is None:
        return None
    for required in provider.requires:
        key = capability_key(required)
        if lifetimes.get(key) is Lifetime.SCOPED:
            return [capability, key]
        if key in seen:
            continue
        seen.add(key)
        path = _scoped_dependency_path(key, selected, lifetimes, seen)
        if path is not None:
            return [capability, *path]
    return None


def _lifetime_issues(
    selected: Mapping[CapabilityKey, CapabilityProvider],
    lifetimes: Mapping[CapabilityKey, Lifetime],
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for capability, provider in selected.items():
        if lifetimes.get(capability) is not Lifetime.SINGLETON:
            continue
        path = _scoped_dependency_path(capability, selected, lifetimes, {capability})
        if path is None:
            continue
        chain = " -> ".join(capability_label(c) for c in path)
        issues.append(
            provider.issue(
                "lifetimes",
                f"singleton capability depends on scoped capability '{capability_label(path[-1])}' ({chain})",
            )
        )
    return issues


def collect_issues(
    registry: ProviderRegistry,
    settings: FeedSettings,
    mode: SelectionMode | None = None,
    lifetimes: Mapping[CapabilityKey, Lifetime] | None = None,
) -> list[ValidationIssue]:
    """Return every configuration issue for *settings*, in capability order.

    Selection uses *mode* (defaults to ``settings.provider_selection``), so a
    strict deployment sees ambiguity reported here as well.  *lifetimes* are
    the effective per-capability lifetimes; by default the registry defaults
    with ``settings.lifetimes`` applied.  Nothing is constructed and
    *settings* is never modified.

    Providers sharing the same rules report a given (setting, message) once.
    """
    resolver = CapabilityResolver(registry, mode or settings.provider_selection)
    if lifetimes is None:
        lifetimes = _configured_lifetimes(registry, settings)
    else:
        lifetimes = {capability_key(c): Lifetime(value) for c, value in lifetimes.items()}

    issues: list[ValidationIssue] = []
    seen: set[tuple[str | None, str]] = set()
    selected: dict[CapabilityKey, CapabilityProvider] = {}

    def _report(found: list[ValidationIssue]) -> None:
        for issue in found:
            key = (issue.setting, issue.message)
            if issue.setting is not None and key in seen:
                continue
            seen.add(key)
            issues.append(issue)

    for capability in registry.capabilities():
        label = capability_label(capability)
        try:
            provider = resolver.select(capability, settings)
        except (NoProviderError, AmbiguousProviderError) as exc:
            _report([ValidationIssue(capability=label, provider=None, setting=None, message=str(exc))])
            continue

        selected[capability] = provider
        _report(provider.validate(settings))

    _report(_lifetime_issues(selected, lifetimes))
    return issues


def validate_settings(
    registry: ProviderRegistry,
    settings: FeedSettings,
    mode: SelectionMode | None = None,
    lifetimes: Mapping[CapabilityKey, Lifetime] | None = None,
) -> FeedSettings:
    """Validate *settings* as a whole and return it unchanged.

    Raises
    ------
    ConfigurationValidationError
        Carrying every issue found, if any.
    """
    issues = collect_issues(registry, settings, mode, lifetimes)
    if issues:
        for issue in issues:
            logger.error("Configuration issue: %s", issue)
        raise ConfigurationValidationError(issues)
    return settings
