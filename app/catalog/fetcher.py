"""Paginated product fetching.

Walks the ``products`` connection of the Admin API with cursor
pagination and collects every page in memory.
"""

from typing import Any

import structlog

from app.catalog.items import CatalogItem, edge_nodes
from app.catalog.queries import PAGE_SIZES, FieldSet, products_page_query
from app.domain.exceptions import RemoteResponseInvalidError
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError

logger = structlog.get_logger()


class PagedFetcher:
    """Fetches every product matching a search query.

    Full-field fetches embed metafield references. Some shops reject that
    sub-query, so a failed page is retried once with the references left
    out and the reduced field set is kept for the remaining pages.

    Example usage:
        fetcher = PagedFetcher(client)
        items = await fetcher.fetch("vendor:'Acme'", full_fields=True)
    """

    def __init__(self, client: ShopifyAdminClient) -> None:
        """Initialize fetcher.

        Args:
            client: Shopify client for the shop being exported.
        """
        self.client = client

    async def _fetch_page(
        self,
        field_set: FieldSet,
        query_string: str,
        cursor: str | None,
    ) -> dict[str, Any] | None:
        """Fetch one page, returning the ``products`` object or None on failure."""
        variables = {
            "first": PAGE_SIZES[field_set],
            "after": cursor,
            "query": query_string or None,
        }
        try:
            data = await self.client.execute(products_page_query(field_set), variables)
        except ShopifyClientError as e:
            logger.warning(
                "Product page request failed",
                field_set=field_set.value,
                cursor=cursor,
                status_code=e.status_code,
                error=e.message,
            )
            return None

        products = data.get("products")
        if not products:
            logger.warning(
                "Product page without products envelope",
                field_set=field_set.value,
                cursor=cursor,
            )
            return None
        return products

    async def fetch(
        self,
        query_string: str = "",
        full_fields: bool = False,
    ) -> list[CatalogItem]:
        """Fetch all products matching a search query.

        Args:
            query_string: Shopify search query, empty for no filter.
            full_fields: Request display fields, variants, images and
                metafields instead of the narrow filter-only set.

        Returns:
            Every matching product, in Shopify's order.

        Raises:
            RemoteResponseInvalidError: When a page cannot be fetched
                and no field downgrade is left to try.
        """
        field_set = FieldSet.FULL if full_fields else FieldSet.NARROW
        tried_without_references = False
        items: list[CatalogItem] = []
        cursor: str | None = None
        pages = 0

        while True:
            products = await self._fetch_page(field_set, query_string, cursor)

            if products is None:
                if field_set is FieldSet.FULL and not tried_without_references:
                    tried_without_references = True
                    field_set = FieldSet.FULL_WITHOUT_REFERENCES
                    logger.info(
                        "Retrying product page without metafield references",
                        cursor=cursor,
                    )
                    continue
                raise RemoteResponseInvalidError(
                    "Invalid Shopify response while fetching products", cursor=cursor
                )

            items.extend(CatalogItem.from_node(node) for node in edge_nodes(products))
            pages += 1

            page_info = products.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            if not cursor:
                logger.warning("Next page announced without cursor", pages=pages)
                break

        logger.info(
            "Fetched products",
            count=len(items),
            pages=pages,
            field_set=field_set.value,
            has_query=bool(query_string),
        )
        return items
