"""Shared API dependencies.

Resolves the Shopify Admin client of the calling shop from the
``token`` and ``shop`` query parameters, and builds the services the
routers use.
"""

from collections.abc import AsyncIterator
from typing import Annotated

import structlog
from fastapi import Depends, Query, Request

from app.application.catalog_service import CatalogService
from app.application.sync_service import SyncService
from app.domain.exceptions import (
    AuthenticationError,
    MissingParameterError,
    NotFoundError,
)
from app.infrastructure.config import settings
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError
from app.infrastructure.stores import (
    SettingsStore,
    SyncLogStore,
    get_settings_store,
    get_sync_log_store,
)

logger = structlog.get_logger()


TOKEN_REQUIRED_MESSAGE = "Authentication token required. Use ?token=YOUR_TOKEN"
SHOP_REQUIRED_MESSAGE = "Required parameter 'shop' in URL (?shop=shopDomain)"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def get_shopify_client(
    request: Request,
    token: Annotated[str | None, Query(description="Shopify Admin API token")] = None,
    shop: Annotated[str | None, Query(description="Shop domain")] = None,
) -> AsyncIterator[ShopifyAdminClient]:
    """Authenticate the caller and yield a client for its shop.

    The token is checked against Shopify before the route runs unless
    ``shopify_validate_tokens`` is off. The client is closed when the
    request finishes.

    Raises:
        AuthenticationError: If the token is missing or rejected.
        MissingParameterError: If the shop is missing.
    """
    if not token:
        raise AuthenticationError(TOKEN_REQUIRED_MESSAGE)
    if not shop:
        raise MissingParameterError("shop", SHOP_REQUIRED_MESSAGE)

    client = ShopifyAdminClient(shop, token, request_id=_request_id(request))
    try:
        if settings.shopify_validate_tokens:
            try:
                await client.validate_token()
            except ShopifyClientError as e:
                if e.status_code is None:
                    raise
                raise AuthenticationError(e.message, e.status_code) from e
        yield client
    finally:
        await client.close()


async def get_public_shopify_client(
    request: Request,
    store: Annotated[SettingsStore, Depends(get_settings_store)],
    token: Annotated[str | None, Query(description="Public Shopify token")] = None,
    shop: Annotated[str | None, Query(description="Shop domain")] = None,
) -> AsyncIterator[ShopifyAdminClient]:
    """Yield a client for the configured shop using a public token.

    The shop is the ``shop`` parameter when given, else the first
    configured shop. The token is saved as that shop's token.

    Raises:
        AuthenticationError: If the token is missing or malformed.
        NotFoundError: If no shop is configured.
    """
    if not token:
        raise AuthenticationError(TOKEN_REQUIRED_MESSAGE)
    prefix = settings.public_token_prefix
    if not token.startswith(prefix):
        raise AuthenticationError(
            f"Invalid token format. The token must start with '{prefix}'"
        )

    setting = await store.get(shop) if shop else await store.first()
    if setting is None:
        raise NotFoundError("No shop configured", {"shop": shop})

    await store.save_token(setting.shop, token)
    logger.info("Public token stored", shop=setting.shop)

    client = ShopifyAdminClient(setting.shop, token, request_id=_request_id(request))
    try:
        yield client
    finally:
        await client.close()


def get_catalog_service(
    client: Annotated[ShopifyAdminClient, Depends(get_shopify_client)],
) -> CatalogService:
    """Get catalog service for the authenticated shop."""
    return CatalogService(client)


def get_public_catalog_service(
    client: Annotated[ShopifyAdminClient, Depends(get_public_shopify_client)],
) -> CatalogService:
    """Get catalog service for the publicly accessed shop."""
    return CatalogService(client)


def get_sync_service(
    settings_store: Annotated[SettingsStore, Depends(get_settings_store)],
    sync_log_store: Annotated[SyncLogStore, Depends(get_sync_log_store)],
) -> SyncService:
    """Get sync service over the configured stores."""
    return SyncService(settings_store, sync_log_store)
