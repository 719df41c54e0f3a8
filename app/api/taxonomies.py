"""Category meta taxonomy endpoints.

- GET /upsellr/category-meta-taxonomies - taxonomies per product or category
- GET /upsellr/category-meta-suggestions - frequently filled metafields
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from app.api.catalog import ERROR_RESPONSES
from app.api.dependencies import get_catalog_service
from app.api.schemas import ErrorResponse
from app.application.catalog_service import CatalogService

router = APIRouter(prefix="/upsellr", tags=["Taxonomies"])


@router.get(
    "/category-meta-taxonomies",
    responses={
        **ERROR_RESPONSES,
        404: {"model": ErrorResponse, "description": "Product or category not found"},
    },
    summary="Get category meta taxonomies",
)
async def get_category_meta_taxonomies(
    request: Request,
    response: Response,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> dict[str, Any]:
    """Describe the meta taxonomies of a product, a category or every category.

    ``product_id`` takes precedence over ``category``. Set
    ``include_suggestions=true`` to add frequency suggestions.
    """
    response.headers["Cache-Control"] = "no-cache"
    return await service.category_meta_taxonomies(request.query_params)


@router.get(
    "/category-meta-suggestions",
    responses={
        **ERROR_RESPONSES,
        404: {"model": ErrorResponse, "description": "Category has no products"},
    },
    summary="Get category meta suggestions",
)
async def get_category_meta_suggestions(
    request: Request,
    response: Response,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> dict[str, Any]:
    """Suggest metafields filled in by at least ``min_frequency`` of a category."""
    response.headers["Cache-Control"] = "no-cache"
    return await service.category_meta_suggestions(request.query_params)
