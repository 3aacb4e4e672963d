"""Abstract interface for package content storage.

Every storage backend must satisfy the :class:`StorageService` protocol so
that indexing and download code stays backend-agnostic.  Paths are always
``/``-separated and relative to the backend's root.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class StoragePutResult(str, Enum):
    SUCCESS = "success"
    ALREADY_EXISTS = "already_exists"
    CONFLICT = "conflict"


class StorageError(Exception):
    """Raised when a storage path is invalid or the backend fails."""


class StorageService(Protocol):
    """Structural interface for content storage backends."""

    async def get(self, path: str) -> bytes | None:
        """Return the content at *path*, or ``None`` if it does not exist."""
        ...

    async def put(self, path: str, content: bytes) -> StoragePutResult:
        """Store *content* at *path*.

        Storing identical content twice reports ``ALREADY_EXISTS``; different
        content at an occupied path reports ``CONFLICT`` and leaves the
        stored content untouched.
        """
        ...

    async def delete(self, path: str) -> None:
        """Remove *path*; a missing path is not an error."""
        ...
