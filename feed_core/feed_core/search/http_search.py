"""Remote search index reached over HTTP.

Talks to a search service exposing::

    GET  {endpoint}/indexes/{index}/search?q=...&skip=...&take=...
         -> {"results": [{"package_id": ..., "versions": [...], ...}]}
    POST {endpoint}/indexes/{index}/documents   (one package document)

Requests carry the configured key in an ``api-key`` header.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from feed_core.models.package import Package, SearchResult
from feed_core.search.base import SearchBackendError

logger = logging.getLogger(__name__)


class HttpSearchClient:
    """Async HTTP client bound to one remote index.

    Parameters
    ----------
    endpoint:
        Root URL of the search service.
    api_key:
        Key sent in the ``api-key`` header.
    index_name:
        Name of the package index.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        index_name: str = "packages",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._index_name = index_name
        self._client = httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"api-key": api_key, "Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def index_path(self) -> str:
        return f"/indexes/{self._index_name}"

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, f"{self.index_path}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Search backend returned %d for %s: %s",
                exc.response.status_code,
                path,
                exc.response.text[:500],
            )
            raise SearchBackendError(f"Search backend returned {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            logger.warning("Search backend request to %s failed: %s", path, exc)
            raise SearchBackendError(f"Search backend unreachable: {exc}") from exc
        return response

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()


class HttpSearchService(HttpSearchClient):
    async def search(self, query: str = "", skip: int = 0, take: int = 20) -> list[SearchResult]:
        response = await self.request("GET", "/search", params={"q": query, "skip": skip, "take": take})
        try:
            payload = response.json()
            return [SearchResult.model_validate(item) for item in payload.get("results", [])]
        except (ValueError, AttributeError, ValidationError) as exc:
            raise SearchBackendError(f"Malformed search response: {exc}") from exc


class HttpSearchIndexer(HttpSearchClient):
    async def index(self, package: Package) -> None:
        await self.request("POST", "/documents", json=package.model_dump(mode="json"))
        logger.info("Indexed %s %s in remote search", package.package_id, package.version)
