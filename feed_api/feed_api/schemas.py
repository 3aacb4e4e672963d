"""Pydantic request/response schemas for the package feed endpoints."""

from __future__ import annotations

from feed_core.models.package import SearchResult
from pydantic import BaseModel, Field


class PackageVersionsResponse(BaseModel):
    versions: list[str]


class SearchResponse(BaseModel):
    total_hits: int = Field(..., ge=0, description="Number of results in this page.")
    data: list[SearchResult]


class IndexingResponse(BaseModel):
    package_id: str
    version: str
    status: str


class BackendReport(BaseModel):
    provider: str
    lifetime: str


class HealthResponse(BaseModel):
    status: str
    version: str
    backends: dict[str, BackendReport]
