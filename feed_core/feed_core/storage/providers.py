"""Capability providers for package content storage."""

from __future__ import annotations

import boto3

from feed_core.composition.capabilities import Capability
from feed_core.composition.errors import ValidationIssue
from feed_core.composition.provider import CapabilityProvider, Dependencies
from feed_core.config import FeedSettings
from feed_core.storage.file_storage import FileStorageService
from feed_core.storage.s3_storage import S3StorageService


class FileStorageProvider(CapabilityProvider):
    """Local filesystem storage; applies to ``storage.type`` ``filesystem`` or ``file``."""

    name = "filesystem"
    capability = Capability.STORAGE

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.storage.is_type("filesystem", "file")

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        path = settings.storage.path
        if path is None or not str(path).strip():
            return [self.issue("storage.path", "must not be empty for filesystem storage")]
        if path.exists() and not path.is_dir():
            return [self.issue("storage.path", f"'{path}' exists and is not a directory")]
        return []

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> FileStorageService:
        assert settings.storage.path is not None
        return FileStorageService(settings.storage.path)


class S3StorageProvider(CapabilityProvider):
    """AWS S3 object storage; applies to ``storage.type`` ``awss3`` or ``s3``."""

    name = "awss3"
    capability = Capability.STORAGE

    def is_active(self, settings: FeedSettings) -> bool:
        return settings.storage.is_type("awss3", "s3")

    def validate(self, settings: FeedSettings) -> list[ValidationIssue]:
        options = settings.storage
        issues: list[ValidationIssue] = []
        if not options.bucket.strip():
            issues.append(self.issue("storage.bucket", "must not be empty for S3 storage"))
        if not options.region.strip() and not options.service_url.strip():
            issues.append(self.issue("storage.region", "a region or a service_url is required for S3 storage"))
        elif options.service_url and not options.service_url.startswith(("http://", "https://")):
            issues.append(self.issue("storage.service_url", "must be an http:// or https:// URL"))

        has_access_key = bool(options.access_key.strip())
        has_secret_key = bool(options.secret_key.get_secret_value().strip())
        if options.use_instance_profile:
            if has_access_key or has_secret_key:
                issues.append(
                    self.issue("storage.use_instance_profile", "cannot be combined with access_key/secret_key")
                )
        elif not has_access_key:
            issues.append(self.issue("storage.access_key", "required unless use_instance_profile is set"))
        elif not has_secret_key:
            issues.append(self.issue("storage.secret_key", "required together with access_key"))
        return issues

    def build(self, settings: FeedSettings, dependencies: Dependencies) -> S3StorageService:
        options = settings.storage
        kwargs: dict[str, str] = {}
        if options.region:
            kwargs["region_name"] = options.region
        if options.service_url:
            kwargs["endpoint_url"] = options.service_url
        if not options.use_instance_profile:
            kwargs["aws_access_key_id"] = options.access_key
            kwargs["aws_secret_access_key"] = options.secret_key.get_secret_value()
        client = boto3.session.Session().client("s3", **kwargs)
        return S3StorageService(client, options.bucket, options.prefix)
