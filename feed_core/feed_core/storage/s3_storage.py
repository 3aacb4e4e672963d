"""AWS S3 storage backend.

Objects are stored under ``<prefix>/<path>`` in a single bucket.  The boto3
client is synchronous, so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from feed_core.storage.base import StorageError, StoragePutResult

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3StorageService:
    """Store package content as objects in an S3 bucket.

    Parameters
    ----------
    client:
        A boto3 S3 client.
    bucket:
        Target bucket name.
    prefix:
        Optional key prefix shared by every object.
    """

    def __init__(self, client: Any, bucket: str, prefix: str = "") -> None:
        self._client = client
        self._bucket = bucket
        self._prefix = prefix.strip("/")

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_key(self, path: str) -> str:
        """Return the S3 key for a relative storage *path*."""
        if not path or path.startswith(("/", "\\")):
            raise StorageError(f"Invalid storage path: {path!r}")
        segments = path.replace("\\", "/").split("/")
        if any(s in ("", "..") for s in segments):
            raise StorageError(f"Invalid storage path: {path!r}")
        key = "/".join(s for s in segments if s != ".")
        return f"{self._prefix}/{key}" if self._prefix else key

    def _get_sync(self, key: str) -> bytes | None:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return None
            raise StorageError(f"Failed to read s3://{self._bucket}/{key}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to read s3://{self._bucket}/{key}: {exc}") from exc
        return response["Body"].read()

    def _put_sync(self, key: str, content: bytes) -> StoragePutResult:
        existing = self._get_sync(key)
        if existing is not None:
            if hashlib.sha256(existing).hexdigest() == hashlib.sha256(content).hexdigest():
                return StoragePutResult.ALREADY_EXISTS
            logger.warning("Refusing to overwrite s3://%s/%s with different content", self._bucket, key)
            return StoragePutResult.CONFLICT

        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType="application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to write s3://{self._bucket}/{key}: {exc}") from exc
        return StoragePutResult.SUCCESS

    def _delete_sync(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete s3://{self._bucket}/{key}: {exc}") from exc

    async def get(self, path: str) -> bytes | None:
        return await asyncio.to_thread(self._get_sync, self.object_key(path))

    async def put(self, path: str, content: bytes) -> StoragePutResult:
        return await asyncio.to_thread(self._put_sync, self.object_key(path), content)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._delete_sync, self.object_key(path))

    def close(self) -> None:
        self._client.close()
