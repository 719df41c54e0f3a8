"""Product import application service.

Creates or updates Shopify products from Upsellr payloads:
- Product fields, SEO and metafields
- Variant SKUs and barcodes
- Product media (with an accessibility probe for new images)
- Collection memberships

Each product is imported independently; a failure on one step is
reported in that product's result and never aborts the batch.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from app.catalog.items import edge_nodes
from app.catalog.queries import (
    COLLECTION_ADD_PRODUCTS_MUTATION,
    COLLECTION_REMOVE_PRODUCTS_MUTATION,
    CREATE_MEDIA_MUTATION,
    DELETE_MEDIA_MUTATION,
    PRODUCT_COLLECTIONS_QUERY,
    PRODUCT_CREATE_MUTATION,
    PRODUCT_MEDIA_QUERY,
    PRODUCT_UPDATE_MUTATION,
    PRODUCT_VARIANTS_QUERY,
    VARIANTS_BULK_UPDATE_MUTATION,
)
from app.infrastructure.config import settings
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError

logger = structlog.get_logger()


DRAFT_STATUS = "DRAFT"
SHOPIFY_CDN_HOST = "cdn.shopify.com"

# Substrings of productUpdate user errors meaning the product is gone.
NOT_FOUND_MARKERS = (
    "not found",
    "doesn't exist",
    "does not exist",
    "could not find",
    "invalid id",
)


# ============================================================================
# Payload helpers
# ============================================================================


def build_product_input(product: dict[str, Any], create: bool) -> dict[str, Any]:
    """Build a Shopify ``ProductInput`` from an Upsellr product.

    New products start as DRAFT. Updates leave the status untouched.

    Args:
        product: Upsellr product payload.
        create: Whether the product is being created.

    Returns:
        ProductInput dict.
    """
    product_input: dict[str, Any] = {}
    if product.get("title"):
        product_input["title"] = product["title"]
    if product.get("description"):
        product_input["descriptionHtml"] = product["description"]
    if create:
        product_input["status"] = DRAFT_STATUS
    if product.get("vendor"):
        product_input["vendor"] = product["vendor"]
    if product.get("productType"):
        product_input["productType"] = product["productType"]

    tags = product.get("tags")
    if tags:
        product_input["tags"] = tags if isinstance(tags, list) else [tags]

    seo: dict[str, Any] = {}
    if product.get("meta_title"):
        seo["title"] = product["meta_title"]
    if product.get("meta_description"):
        seo["description"] = product["meta_description"]
    if seo:
        product_input["seo"] = seo

    metafields = []
    if product.get("short_description"):
        metafields.append(
            {
                "namespace": "custom",
                "key": "short_description",
                "value": product["short_description"],
                "type": "multi_line_text_field",
            }
        )
    specifications = product.get("specifications")
    if isinstance(specifications, list) and specifications:
        metafields.append(
            {
                "namespace": "specs",
                "key": "technical",
                "value": json.dumps(
                    [
                        {"title": spec.get("name"), "value": spec.get("content")}
                        for spec in specifications
                    ]
                ),
                "type": "json",
            }
        )
    if metafields:
        product_input["metafields"] = metafields

    if not create:
        product_input["id"] = product["id"]
    return product_input


def is_not_found_error(user_errors: list[dict[str, Any]]) -> bool:
    """Check whether user errors say the product no longer exists."""
    for error in user_errors:
        message = (error.get("message") or "").lower()
        if any(marker in message for marker in NOT_FOUND_MARKERS):
            return True
    return False


def join_messages(user_errors: list[dict[str, Any]]) -> str | None:
    """Join user error messages, None when there are none."""
    return ", ".join(e.get("message") or "" for e in user_errors) or None


def variant_input(
    product: dict[str, Any],
    index: int,
    variant: dict[str, Any],
) -> dict[str, Any]:
    """Build the bulk update input for one existing variant.

    Identifiers come from ``product["variants"][index]`` when present,
    else from the product-level ``sku`` and ``ean``, else the variant
    keeps its current values.
    """
    sku = variant.get("sku")
    barcode = variant.get("barcode")
    payload_variants = product.get("variants") or []
    if index < len(payload_variants):
        source = payload_variants[index] or {}
        sku = source.get("sku") or sku
        barcode = source.get("ean") or barcode
    else:
        sku = product.get("sku") or sku
        barcode = product.get("ean") or barcode

    variant_payload: dict[str, Any] = {"id": variant["id"]}
    if sku is not None:
        variant_payload["inventoryItem"] = {"sku": sku}
    if barcode is not None:
        variant_payload["barcode"] = barcode
    return variant_payload


# ============================================================================
# Image probe
# ============================================================================


class ImageProbe:
    """Checks that image URLs are reachable before handing them to Shopify.

    Example usage:
        async with ImageProbe() as probe:
            urls = await probe.filter_accessible(urls)
    """

    def __init__(
        self,
        check_timeout: float | None = None,
        download_timeout: float | None = None,
    ) -> None:
        """Initialize image probe.

        Args:
            check_timeout: Timeout of the HEAD request in seconds.
            download_timeout: Timeout of the full download of Shopify
                CDN images in seconds.
        """
        self.check_timeout = (
            check_timeout
            if check_timeout is not None
            else settings.image_check_timeout_seconds
        )
        self.download_timeout = (
            download_timeout
            if download_timeout is not None
            else settings.image_download_timeout_seconds
        )
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ImageProbe":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

    async def is_accessible(self, url: str) -> bool:
        """Check one image URL.

        The URL must answer a HEAD request with a 2xx status, an
        ``image/*`` content type and a non-zero length when one is
        announced. Shopify CDN images are also downloaded in full and
        must not be empty.

        Args:
            url: Image URL.

        Returns:
            True if the image can be used.
        """
        client = await self._get_client()
        try:
            response = await client.head(url, timeout=self.check_timeout)
            if not response.is_success:
                logger.info("Image not reachable", url=url, status_code=response.status_code)
                return False

            content_type = response.headers.get("content-type") or ""
            if not content_type.startswith("image/"):
                logger.info("URL is not an image", url=url, content_type=content_type)
                return False

            if response.headers.get("content-length") == "0":
                logger.info("Image is empty", url=url)
                return False

            if SHOPIFY_CDN_HOST in url:
                download = await client.get(url, timeout=self.download_timeout)
                if not download.is_success or not download.content:
                    logger.info(
                        "Shopify image download failed",
                        url=url,
                        status_code=download.status_code,
                    )
                    return False
        except httpx.HTTPError as e:
            logger.info("Image check failed", url=url, error=str(e))
            return False
        return True

    async def filter_accessible(self, urls: list[str]) -> list[str]:
        """Keep the reachable images, probing them concurrently.

        Args:
            urls: Image URLs.

        Returns:
            Accessible URLs in their original order.
        """
        results = await asyncio.gather(
            *(self.is_accessible(url) for url in urls), return_exceptions=True
        )
        accessible = []
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.warning("Image check raised", url=url, error=str(result))
            elif result:
                accessible.append(url)

        if len(accessible) < len(urls):
            logger.info(
                "Filtered inaccessible images",
                accessible=len(accessible),
                rejected=len(urls) - len(accessible),
            )
        return accessible


# ============================================================================
# Service
# ============================================================================


@dataclass
class ProductImportResult:
    """Outcome of importing one product."""

    status: str = "ok"
    error: str | None = None
    shopify_id: str | None = None
    upsellr_raw_id: Any = None
    variant_errors: list[dict[str, Any]] = field(default_factory=list)
    collection_errors: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status,
            "error": self.error,
            "shopify_id": self.shopify_id,
            "upsellr_raw_id": self.upsellr_raw_id,
            "variant_errors": self.variant_errors,
            "collection_errors": self.collection_errors,
        }


class ImportService:
    """Service for importing Upsellr products into a shop.

    Example usage:
        async with ImageProbe() as probe:
            service = ImportService(client, probe)
            results = await service.import_products(body["products"])
    """

    def __init__(self, client: ShopifyAdminClient, image_probe: ImageProbe) -> None:
        """Initialize import service.

        Args:
            client: Shopify client of the target shop.
            image_probe: Probe used to filter new images.
        """
        self.client = client
        self.image_probe = image_probe

    async def import_products(self, products: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Import a batch of products, one after the other.

        Entries with neither ``id`` nor ``title`` are skipped.

        Args:
            products: Upsellr product payloads.

        Returns:
            One result dict per imported product.
        """
        results = []
        for product in products:
            if not isinstance(product, dict):
                continue
            if not product.get("id") and not product.get("title"):
                continue
            result = await self.import_product(product)
            results.append(result.to_dict())

        logger.info(
            "Products imported",
            received=len(products),
            imported=len(results),
            failed=sum(1 for r in results if r["status"] == "error"),
        )
        return results

    async def import_product(self, product: dict[str, Any]) -> ProductImportResult:
        """Create or update one product and its variants, media and collections.

        Args:
            product: Upsellr product payload.

        Returns:
            ProductImportResult for the product.
        """
        result = ProductImportResult(upsellr_raw_id=product.get("upsellr_raw_id"))
        is_update = bool(product.get("id"))

        try:
            shopify_id, user_errors = await self._save_product(product)
        except ShopifyClientError as e:
            logger.warning(
                "Product save failed",
                product_id=product.get("id"),
                error=e.message,
            )
            result.status = "error"
            result.error = e.message
            return result

        if not shopify_id:
            result.status = "error"
            result.error = join_messages(user_errors) or "No product returned by Shopify"
            return result

        result.shopify_id = shopify_id
        if user_errors:
            result.status = "error"
            result.error = join_messages(user_errors)

        result.variant_errors = await self._sync_variants(shopify_id, product)
        await self._sync_media(shopify_id, product, is_update)
        result.collection_errors = await self._sync_collections(
            shopify_id, product, is_update
        )
        return result

    # ------------------------------------------------------------------
    # Product
    # ------------------------------------------------------------------

    async def _run_product_mutation(
        self, mutation: str, root: str, product_input: dict[str, Any]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        data = await self.client.execute(mutation, {"input": product_input})
        payload = data.get(root) or {}
        created = payload.get("product") or {}
        return created.get("id"), payload.get("userErrors") or []

    async def _save_product(
        self, product: dict[str, Any]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Update the product, or create it when it has no ID or is gone.

        Returns:
            Tuple of (Shopify product ID or None, user errors).
        """
        if not product.get("id"):
            return await self._run_product_mutation(
                PRODUCT_CREATE_MUTATION,
                "productCreate",
                build_product_input(product, create=True),
            )

        shopify_id, user_errors = await self._run_product_mutation(
            PRODUCT_UPDATE_MUTATION,
            "productUpdate",
            build_product_input(product, create=False),
        )
        if shopify_id or not is_not_found_error(user_errors):
            return shopify_id, user_errors

        logger.info("Product gone on Shopify, re-creating", product_id=product["id"])
        return await self._run_product_mutation(
            PRODUCT_CREATE_MUTATION,
            "productCreate",
            build_product_input(product, create=True),
        )

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    async def _bulk_update_variants(
        self, product_id: str, variants: list[dict[str, Any]]
    ) -> str | None:
        """Run one bulk variant update, returning an error message or None."""
        try:
            data = await self.client.execute(
                VARIANTS_BULK_UPDATE_MUTATION,
                {"productId": product_id, "variants": variants},
            )
        except ShopifyClientError as e:
            return e.message

        payload = data.get("productVariantsBulkUpdate") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            return ", ".join(
                f"{e.get('field')}: {e.get('message')}" for e in user_errors
            )
        if not payload.get("productVariants"):
            return "No variants returned by Shopify"
        return None

    async def _sync_variants(
        self, product_id: str, product: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Write SKUs and barcodes to the product's variants.

        One bulk update covers every variant. When it fails, each variant
        is retried alone and the remaining failures are returned.
        """
        if not (product.get("sku") or product.get("ean") or product.get("variants")):
            return []

        try:
            data = await self.client.execute(PRODUCT_VARIANTS_QUERY, {"id": product_id})
        except ShopifyClientError as e:
            return [{"variant_id": None, "error": e.message}]

        variants = edge_nodes((data.get("product") or {}).get("variants"))
        if not variants:
            logger.warning("No variants to update", product_id=product_id)
            return [{"variant_id": None, "error": "No variants found"}]

        inputs = [variant_input(product, i, v) for i, v in enumerate(variants)]
        bulk_error = await self._bulk_update_variants(product_id, inputs)
        if bulk_error is None:
            return []

        logger.info(
            "Bulk variant update failed, updating one by one",
            product_id=product_id,
            error=bulk_error,
        )
        errors = []
        for single in inputs:
            error = await self._bulk_update_variants(product_id, [single])
            if error is not None:
                errors.append({"variant_id": single["id"], "error": error})
        return errors

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    async def _existing_media(self, product_id: str) -> list[dict[str, Any]]:
        data = await self.client.execute(PRODUCT_MEDIA_QUERY, {"id": product_id})
        media = []
        for node in edge_nodes((data.get("product") or {}).get("media")):
            if node.get("id"):
                media.append(
                    {
                        "id": node["id"],
                        "src": (node.get("image") or {}).get("originalSrc"),
                    }
                )
        return media

    async def _sync_media(
        self, product_id: str, product: dict[str, Any], is_update: bool
    ) -> None:
        """Replace the product's images with the requested ones.

        On update, media no longer listed are deleted and images already
        present are not uploaded again.
        """
        wanted: list[str] = [url for url in product.get("images") or [] if url]
        existing: list[dict[str, Any]] = []

        try:
            if is_update:
                existing = await self._existing_media(product_id)
                stale = [m["id"] for m in existing if m["src"] not in wanted]
                if stale:
                    await self.client.execute(
                        DELETE_MEDIA_MUTATION,
                        {"productId": product_id, "mediaIds": stale},
                    )
                    logger.info("Deleted stale media", product_id=product_id, count=len(stale))

            if not wanted:
                return

            accessible = await self.image_probe.filter_accessible(wanted)
            present = {m["src"] for m in existing}
            to_add = [url for url in accessible if url not in present]
            if not to_add:
                return

            data = await self.client.execute(
                CREATE_MEDIA_MUTATION,
                {
                    "productId": product_id,
                    "media": [
                        {"originalSource": url, "mediaContentType": "IMAGE"}
                        for url in to_add
                    ],
                },
            )
            payload = data.get("productCreateMedia") or {}
            if payload.get("mediaUserErrors"):
                logger.warning(
                    "Some media could not be created",
                    product_id=product_id,
                    errors=payload["mediaUserErrors"],
                )
        except ShopifyClientError as e:
            logger.warning("Media sync failed", product_id=product_id, error=e.message)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def _collection_mutation(
        self, mutation: str, root: str, collection_id: str, product_id: str
    ) -> dict[str, Any] | None:
        """Run an add/remove mutation, returning an error entry or None."""
        try:
            data = await self.client.execute(
                mutation, {"id": collection_id, "productIds": [product_id]}
            )
        except ShopifyClientError as e:
            return {"collectionId": collection_id, "errors": e.errors or [e.message]}

        user_errors = (data.get(root) or {}).get("userErrors") or []
        if user_errors:
            return {"collectionId": collection_id, "userErrors": user_errors}
        return None

    async def _sync_collections(
        self, product_id: str, product: dict[str, Any], is_update: bool
    ) -> list[dict[str, Any]]:
        """Make the requested collections the product's only collections."""
        errors = []

        if is_update:
            try:
                data = await self.client.execute(
                    PRODUCT_COLLECTIONS_QUERY, {"id": product_id}
                )
                current = [
                    node["id"]
                    for node in edge_nodes((data.get("product") or {}).get("collections"))
                ]
            except ShopifyClientError as e:
                current = []
                errors.append({"collectionId": None, "errors": e.errors or [e.message]})

            for collection_id in current:
                error = await self._collection_mutation(
                    COLLECTION_REMOVE_PRODUCTS_MUTATION,
                    "collectionRemoveProducts",
                    collection_id,
                    product_id,
                )
                if error:
                    errors.append(error)

        for collection_id in product.get("collections") or []:
            error = await self._collection_mutation(
                COLLECTION_ADD_PRODUCTS_MUTATION,
                "collectionAddProducts",
                collection_id,
                product_id,
            )
            if error:
                errors.append(error)

        if errors:
            logger.warning(
                "Collection sync incomplete", product_id=product_id, failures=len(errors)
            )
        return errors
