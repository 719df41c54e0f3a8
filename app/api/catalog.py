"""Catalog API endpoints.

Provides the read endpoints Upsellr pulls the shop's catalog from:
- GET /upsellr/products-export - paged simplified products
- GET /upsellr/products-count - number of matching products
- GET /upsellr/products-filters - values accepted by the filters
- GET /upsellr/thesaurus - brands and categories

Every endpoint authenticates with ``?token=...&shop=...``.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status

from app.api.dependencies import get_catalog_service
from app.api.schemas import (
    ErrorResponse,
    FilterOptionsResponse,
    ProductsCountResponse,
    ThesaurusResponse,
)
from app.application.catalog_service import CatalogService

router = APIRouter(prefix="/upsellr", tags=["Catalog"])

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or rejected token"},
    400: {"model": ErrorResponse, "description": "Missing shop"},
    502: {"model": ErrorResponse, "description": "Shopify answered unusably"},
}


@router.get(
    "/products-export",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    summary="Export products",
    description="Get one page of filtered products in the simplified export shape.",
)
async def export_products(
    request: Request,
    response: Response,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> dict[str, Any]:
    """Export a page of products.

    Accepts every product filter plus ``page``, ``page_size`` (max 250),
    ``exclude_meta_taxonomies`` and ``skip_metaobject_resolution``.

    Returns:
        ``{stats, products}``.
    """
    response.headers["Cache-Control"] = "no-cache"
    return await service.export_products(request.query_params)


@router.get(
    "/products-count",
    response_model=ProductsCountResponse,
    responses=ERROR_RESPONSES,
    summary="Count products",
)
async def count_products(
    request: Request,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductsCountResponse:
    """Count the products matching the filters."""
    count = await service.count_products(request.query_params)
    return ProductsCountResponse(products_count=count)


@router.get(
    "/products-filters",
    response_model=FilterOptionsResponse,
    responses=ERROR_RESPONSES,
    summary="List filter options",
)
async def list_filter_options(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> FilterOptionsResponse:
    """List collections, categories, product types and vendors."""
    return FilterOptionsResponse(**await service.list_filter_options())


@router.get(
    "/thesaurus",
    response_model=ThesaurusResponse,
    responses=ERROR_RESPONSES,
    summary="Get thesaurus",
)
async def get_thesaurus(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ThesaurusResponse:
    """List brands (vendors) and categories (product types)."""
    return ThesaurusResponse(**await service.thesaurus())
