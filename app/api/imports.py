"""Product import endpoint.

- POST /upsellr/products-import - create or update products in the shop
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.catalog import ERROR_RESPONSES
from app.api.dependencies import get_shopify_client
from app.api.schemas import ProductImportRequest, ProductImportResponse
from app.application.import_service import ImageProbe, ImportService
from app.infrastructure.shopify_client import ShopifyAdminClient

router = APIRouter(prefix="/upsellr", tags=["Import"])


@router.post(
    "/products-import",
    response_model=ProductImportResponse,
    responses=ERROR_RESPONSES,
    summary="Import products",
    description=(
        "Create products without an id (as drafts) and update the others. "
        "Failures are reported per product."
    ),
)
async def import_products(
    body: ProductImportRequest,
    client: Annotated[ShopifyAdminClient, Depends(get_shopify_client)],
) -> ProductImportResponse:
    """Import a batch of Upsellr products.

    Args:
        body: Products to import.
        client: Shopify client of the target shop.

    Returns:
        One result per imported product.
    """
    async with ImageProbe() as probe:
        service = ImportService(client, probe)
        results = await service.import_products(body.products)
    return ProductImportResponse(results=results)
