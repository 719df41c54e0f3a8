"""Public product listing.

- GET /api/products/public - raw product nodes of the configured shop
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from app.api.dependencies import get_public_catalog_service
from app.api.schemas import ErrorResponse
from app.application.catalog_service import CatalogService

router = APIRouter(prefix="/api/products", tags=["Public"])


@router.get(
    "/public",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or malformed token"},
        404: {"model": ErrorResponse, "description": "No shop configured"},
    },
    summary="List products publicly",
)
async def list_public_products(
    request: Request,
    response: Response,
    service: Annotated[CatalogService, Depends(get_public_catalog_service)],
) -> dict[str, Any]:
    """List a page of raw products with the export filters.

    ``page_size`` defaults to 100 and is capped at 100.
    """
    response.headers["Cache-Control"] = "no-cache"
    return await service.list_public_products(request.query_params)
