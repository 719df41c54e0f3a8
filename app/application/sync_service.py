"""Connection and synchronization bookkeeping.

Records shop connections, catalog run logs and synchronized product
links in the injected stores.
"""

from typing import Any

import structlog

from app.domain.records import ProductSync, SyncLog
from app.infrastructure.config import settings
from app.infrastructure.stores import SettingsStore, SyncLogStore

logger = structlog.get_logger()


def shop_id_for(shop_domain: str) -> str:
    """Derive the shop GID from its domain (``acme.myshopify.com`` -> ``gid://shopify/Shop/acme``)."""
    return f"gid://shopify/Shop/{shop_domain.split('.')[0]}"


class SyncService:
    """Service for connection and sync bookkeeping.

    Example usage:
        service = SyncService(get_settings_store(), get_sync_log_store())
        payload = await service.connect("acme.myshopify.com", token)
    """

    def __init__(self, settings_store: SettingsStore, sync_log_store: SyncLogStore) -> None:
        """Initialize sync service.

        Args:
            settings_store: Store for shop settings and connections.
            sync_log_store: Store for sync logs and product links.
        """
        self.settings_store = settings_store
        self.sync_log_store = sync_log_store

    async def connect(self, shop_domain: str, token: str) -> dict[str, Any]:
        """Record a validated shop connection.

        A store failure is logged and reported as a warning; the caller
        still gets its connection details.

        Args:
            shop_domain: Shop domain.
            token: Access token the shop connected with.

        Returns:
            Connection payload.
        """
        shop_id = shop_id_for(shop_domain)
        payload: dict[str, Any] = {
            "success": "ok",
            "shopDomain": shop_domain,
            "shopId": shop_id,
            "token": token,
            "version": settings.api_version,
        }
        try:
            await self.settings_store.create_shop_connection(
                shop_id=shop_id,
                shop_domain=shop_domain,
                shop_url=f"https://{shop_domain}",
                access_token=token,
            )
            await self.settings_store.save_token(shop_domain, token)
        except Exception as e:
            logger.exception("Failed to record shop connection", shop_domain=shop_domain)
            payload["warning"] = f"Connection established but not recorded: {e}"
            return payload

        logger.info("Shop connected", shop_domain=shop_domain, shop_id=shop_id)
        return payload

    async def record_sync_log(
        self,
        shop_id: str,
        sync_type: str,
        products_count: int,
        status: str,
        error_message: str | None = None,
    ) -> SyncLog:
        """Record a catalog run."""
        log = await self.sync_log_store.create_sync_log(
            shop_id=shop_id,
            sync_type=sync_type,
            products_count=products_count,
            status=status,
            error_message=error_message,
        )
        logger.info(
            "Sync log saved",
            shop_id=shop_id,
            sync_type=sync_type,
            products_count=products_count,
            status=status,
        )
        return log

    async def list_sync_logs(self, shop_id: str) -> list[SyncLog]:
        """List a shop's catalog runs."""
        return await self.sync_log_store.list_sync_logs(shop_id)

    async def record_product_sync(
        self,
        shop_id: str,
        shopify_product_id: str,
        sync_direction: str,
        saas_product_id: str | None = None,
    ) -> ProductSync:
        """Record a synchronized product."""
        record = await self.sync_log_store.create_product_sync(
            shop_id=shop_id,
            shopify_product_id=shopify_product_id,
            sync_direction=sync_direction,
            saas_product_id=saas_product_id,
        )
        logger.info(
            "Product sync saved",
            shop_id=shop_id,
            shopify_product_id=shopify_product_id,
            sync_direction=sync_direction,
        )
        return record

    async def list_product_syncs(self, shop_id: str) -> list[ProductSync]:
        """List a shop's synchronized products."""
        return await self.sync_log_store.list_product_syncs(shop_id)
