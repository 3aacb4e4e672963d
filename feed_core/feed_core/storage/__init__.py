"""Package content storage backends."""

from feed_core.storage.base import StorageError, StoragePutResult, StorageService
from feed_core.storage.file_storage import FileStorageService
from feed_core.storage.providers import FileStorageProvider, S3StorageProvider
from feed_core.storage.s3_storage import S3StorageService

__all__ = [
    "FileStorageProvider",
    "FileStorageService",
    "S3StorageProvider",
    "S3StorageService",
    "StorageError",
    "StoragePutResult",
    "StorageService",
]
