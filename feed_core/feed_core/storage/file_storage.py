"""Local filesystem storage backend."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from pathlib import Path

from feed_core.storage.base import StorageError, StoragePutResult

logger = logging.getLogger(__name__)


class FileStorageService:
    """Store package content as files under *root*.

    Paths that would resolve outside *root* (``..`` segments, absolute
    paths) are rejected with :class:`StorageError`.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        if not path or path.startswith(("/", "\\")):
            raise StorageError(f"Invalid storage path: {path!r}")
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root):
            raise StorageError(f"Storage path escapes the storage root: {path!r}")
        return target

    async def get(self, path: str) -> bytes | None:
        target = self._resolve(path)
        if not target.is_file():
            return None
        return await asyncio.to_thread(target.read_bytes)

    async def put(self, path: str, content: bytes) -> StoragePutResult:
        target = self._resolve(path)
        return await asyncio.to_thread(self._put_sync, target, content)

    def _put_sync(self, target: Path, content: bytes) -> StoragePutResult:
        if target.exists():
            existing = hashlib.sha256(target.read_bytes()).hexdigest()
            if existing == hashlib.sha256(content).hexdigest():
                return StoragePutResult.ALREADY_EXISTS
            logger.warning("Refusing to overwrite %s with different content", target)
            return StoragePutResult.CONFLICT

        target.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling temp file first so readers never see partial content.
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_bytes(content)
        tmp.replace(target)
        return StoragePutResult.SUCCESS

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(target.unlink, missing_ok=True)
