"""Capability identifiers for the swappable feed subsystems."""

from __future__ import annotations

from enum import Enum

from feed_core.config import Lifetime


class Capability(str, Enum):
    """A named subsystem role with exactly one active implementation."""

    DATABASE_CONTEXT = "database_context"
    PACKAGE_DATABASE = "package_database"
    STORAGE = "storage"
    SEARCH = "search"
    SEARCH_INDEXER = "search_indexer"


# The catalog session is shared for one unit of work; everything else is
# cheap to build and not assumed safe to share.
DEFAULT_LIFETIMES: dict[Capability, Lifetime] = {
    Capability.DATABASE_CONTEXT: Lifetime.SCOPED,
    Capability.PACKAGE_DATABASE: Lifetime.TRANSIENT,
    Capability.STORAGE: Lifetime.TRANSIENT,
    Capability.SEARCH: Lifetime.TRANSIENT,
    Capability.SEARCH_INDEXER: Lifetime.TRANSIENT,
}


def capability_key(capability: Capability | str) -> Capability | str:
    """Return the canonical dictionary key for *capability*.

    Plain strings naming a built-in capability map to the enum member;
    other strings are kept as-is so hosts can define their own capabilities.
    """
    if isinstance(capability, Capability):
        return capability
    try:
        return Capability(capability)
    except ValueError:
        return str(capability)
