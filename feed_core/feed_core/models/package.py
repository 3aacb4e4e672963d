"""Package catalog records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class Package(BaseModel):
    """One version of a package as stored in the catalog.

    ``package_id`` is compared case-insensitively; ``version`` is stored in
    normalized (lower-case) form.
    """

    package_id: str = Field(..., min_length=1, max_length=128, description="Package identifier.")
    version: str = Field(..., min_length=1, max_length=64, description="Normalized version string.")
    description: str = Field(default="", description="Free-form description used by search.")
    authors: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    listed: bool = Field(default=True, description="Unlisted versions are hidden from search.")
    downloads: int = Field(default=0, ge=0)
    published: datetime | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _normalise_version(cls, v: str) -> str:
        return str(v).strip().lower()

    @property
    def content_path(self) -> str:
        """Storage-relative path of the package content."""
        lower_id = self.package_id.lower()
        return f"packages/{lower_id}/{self.version}/{lower_id}.{self.version}.nupkg"


class SearchResult(BaseModel):
    """A package id with all of its listed versions, as returned by search."""

    package_id: str
    versions: list[str]
    description: str = ""
    total_downloads: int = 0
