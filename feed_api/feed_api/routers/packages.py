"""Package content, publish and search endpoints.

Handlers only declare the services they need; which storage, catalog and
search backends sit behind them is decided by configuration when the
composition root is built.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from feed_core.services import IndexingResult

from feed_api.dependencies import ContentServiceDep, IndexingServiceDep, PackageDatabaseDep, SearchDep
from feed_api.schemas import IndexingResponse, PackageVersionsResponse, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["packages"])

_MAX_TAKE = 100

_INDEXING_STATUS: dict[IndexingResult, int] = {
    IndexingResult.SUCCESS: status.HTTP_201_CREATED,
    IndexingResult.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    IndexingResult.INVALID_PACKAGE: status.HTTP_400_BAD_REQUEST,
}


@router.get("/v3/package/{package_id}/index.json", response_model=PackageVersionsResponse)
async def list_versions(package_id: str, content: ContentServiceDep) -> PackageVersionsResponse:
    versions = await content.versions(package_id)
    if not versions:
        raise HTTPException(status_code=404, detail=f"Package '{package_id}' not found")
    return PackageVersionsResponse(versions=versions)


@router.get("/v3/package/{package_id}/{version}/content")
async def download_package(package_id: str, version: str, content: ContentServiceDep) -> Response:
    """Return the stored package content and count the download."""
    data = await content.download(package_id, version)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Package '{package_id}' {version} not found")
    return Response(content=data, media_type="application/octet-stream")


@router.put("/api/v2/package/{package_id}/{version}", response_model=IndexingResponse)
async def publish_package(
    package_id: str,
    version: str,
    request: Request,
    indexing: IndexingServiceDep,
    response: Response,
    description: str = Query(default="", max_length=4000),
    authors: list[str] = Query(default=[]),
    tags: list[str] = Query(default=[]),
) -> IndexingResponse:
    """Publish a package version from the raw request body."""
    body = await request.body()
    result = await indexing.index(
        package_id,
        version,
        body,
        description=description,
        authors=authors,
        tags=tags,
    )
    code = _INDEXING_STATUS[result]
    if code >= 400:
        raise HTTPException(status_code=code, detail=result.value)
    response.status_code = code
    return IndexingResponse(package_id=package_id, version=version.strip().lower(), status=result.value)


@router.delete("/api/v2/package/{package_id}/{version}", status_code=status.HTTP_204_NO_CONTENT)
async def unlist_package(package_id: str, version: str, database: PackageDatabaseDep) -> Response:
    """Hide a version from search and version listings; content stays downloadable."""
    if not await database.unlist(package_id, version):
        raise HTTPException(status_code=404, detail=f"Package '{package_id}' {version} not found")
    logger.info("Unlisted package %s %s", package_id, version)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/v3/search", response_model=SearchResponse)
async def search_packages(
    search: SearchDep,
    q: str = Query(default="", max_length=256),
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=20, ge=1, le=_MAX_TAKE),
) -> SearchResponse:
    results = await search.search(q, skip=skip, take=take)
    return SearchResponse(total_hits=len(results), data=results)
