"""Connection and sync bookkeeping endpoints.

- POST /upsellr/connect - record the calling shop's connection
- POST/GET /upsellr/sync-log - catalog run logs
- POST/GET /upsellr/product-sync - synchronized product links
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.catalog import ERROR_RESPONSES
from app.api.dependencies import get_shopify_client, get_sync_service
from app.api.schemas import (
    ConnectResponse,
    MessageResponse,
    ProductSyncCreateRequest,
    ProductSyncListResponse,
    ProductSyncSchema,
    SyncLogCreateRequest,
    SyncLogListResponse,
    SyncLogSchema,
)
from app.application.sync_service import SyncService
from app.infrastructure.shopify_client import ShopifyAdminClient

router = APIRouter(prefix="/upsellr", tags=["Sync"])


@router.post(
    "/connect",
    response_model=ConnectResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    summary="Connect shop",
)
async def connect_shop(
    client: Annotated[ShopifyAdminClient, Depends(get_shopify_client)],
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> ConnectResponse:
    """Record the connection of the authenticated shop."""
    payload = await service.connect(client.shop_domain, client.access_token)
    return ConnectResponse(**payload)


@router.post(
    "/sync-log",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Record sync log",
)
async def create_sync_log(
    body: SyncLogCreateRequest,
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> MessageResponse:
    """Record a catalog run."""
    await service.record_sync_log(
        shop_id=body.shop_id,
        sync_type=body.sync_type,
        products_count=body.products_count,
        status=body.status,
        error_message=body.error_message,
    )
    return MessageResponse(message="Synchronization log saved")


@router.get(
    "/sync-log",
    response_model=SyncLogListResponse,
    summary="List sync logs",
)
async def list_sync_logs(
    service: Annotated[SyncService, Depends(get_sync_service)],
    shop_id: Annotated[str, Query(min_length=1, description="Shop GID")],
) -> SyncLogListResponse:
    """List a shop's catalog runs, newest first."""
    logs = await service.list_sync_logs(shop_id)
    return SyncLogListResponse(
        logs=[SyncLogSchema(**log.to_dict()) for log in logs],
        total=len(logs),
    )


@router.post(
    "/product-sync",
    response_model=MessageResponse,
    summary="Record product sync",
)
async def create_product_sync(
    body: ProductSyncCreateRequest,
    service: Annotated[SyncService, Depends(get_sync_service)],
) -> MessageResponse:
    """Record a synchronized product."""
    await service.record_product_sync(
        shop_id=body.shop_id,
        shopify_product_id=body.shopify_product_id,
        sync_direction=body.sync_direction,
        saas_product_id=body.saas_product_id,
    )
    return MessageResponse(message="Synchronized product saved")


@router.get(
    "/product-sync",
    response_model=ProductSyncListResponse,
    summary="List product syncs",
)
async def list_product_syncs(
    service: Annotated[SyncService, Depends(get_sync_service)],
    shop_id: Annotated[str, Query(min_length=1, description="Shop GID")],
) -> ProductSyncListResponse:
    """List a shop's synchronized products, newest first."""
    records = await service.list_product_syncs(shop_id)
    return ProductSyncListResponse(
        products=[ProductSyncSchema(**record.to_dict()) for record in records],
        total=len(records),
    )
