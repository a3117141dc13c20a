"""API routes for data source discovery and description."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from lacework_lql.catalog.explorer import DataSourceCatalog
from lacework_lql.catalog.schemas import DataSourceDescriptor, DiscoveryFilter

router = APIRouter(prefix="/datasources", tags=["datasources"])


def _get_catalog(request: Request) -> DataSourceCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(status_code=503, detail="Catalog not initialized")
    return catalog


@router.get("", response_model=list[DataSourceDescriptor])
async def list_data_sources(
    request: Request,
    pattern: Optional[str] = Query(None, description="Substring of the source name"),
    category: Optional[str] = Query(None, description="AWS, Azure, Containers, ..."),
    provider: Optional[str] = Query(None, description="aws, azure or gcp"),
    limit: Optional[int] = Query(None, ge=1),
):
    """Discover data sources with optional filters."""
    return await _get_catalog(request).discover(
        DiscoveryFilter(pattern=pattern, category=category, provider=provider, limit=limit)
    )


@router.get("/search", response_model=list[DataSourceDescriptor])
async def search_data_sources(
    request: Request,
    q: str = Query(..., min_length=1, description="Free-text search terms"),
):
    return await _get_catalog(request).search(q)


@router.get("/{name}", response_model=DataSourceDescriptor)
async def describe_data_source(name: str, request: Request):
    """Describe a data source including its fields."""
    source = await _get_catalog(request).describe(name)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Data source not found: {name}")
    return source
