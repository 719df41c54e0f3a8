"""Export projections of catalog items.

Turns fetched items into the payloads returned to Upsellr: the
simplified product view, metaobject definition enrichment and page
windows over in-memory result lists.
"""

import json
import math
from dataclasses import dataclass
from typing import Any

import structlog

from app.catalog.items import CatalogItem, edge_nodes
from app.catalog.queries import METAOBJECT_DEFINITIONS_QUERY
from app.catalog.taxonomy import ResolvedField
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError

logger = structlog.get_logger()


CATEGORY_NAMESPACE = "shopify"
SHORT_DESCRIPTION_FIELD = ("custom", "short_description")
TECHNICAL_SPECS_FIELD = ("specs", "technical")


# ============================================================================
# Metaobject definitions
# ============================================================================


async def fetch_metaobject_definitions(
    client: ShopifyAdminClient,
) -> list[dict[str, Any]]:
    """Fetch the shop's metaobject definitions.

    Args:
        client: Shopify client.

    Returns:
        Definitions as ``{id, type, name, field_definitions}``, or an
        empty list when the request fails.
    """
    try:
        data = await client.execute(METAOBJECT_DEFINITIONS_QUERY)
    except ShopifyClientError as e:
        logger.warning(
            "Failed to fetch metaobject definitions",
            status_code=e.status_code,
            error=e.message,
        )
        return []

    return [
        {
            "id": node.get("id"),
            "type": node.get("type"),
            "name": node.get("name"),
            "field_definitions": node.get("fieldDefinitions") or [],
        }
        for node in edge_nodes(data.get("metaobjectDefinitions"))
    ]


def enrich_meta_fields_with_definitions(
    meta_fields: list[dict[str, Any]],
    definitions: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Attach the matching metaobject definition to each field.

    A definition matches when its type is ``{namespace}--{key}`` or the
    bare key. Fields without a match are returned unchanged.

    Args:
        meta_fields: Fields shaped ``{namespace, key, value, type}``.
        definitions: Output of ``fetch_metaobject_definitions``.

    Returns:
        New list of field dicts.
    """
    by_type = {d["type"]: d for d in definitions if d.get("type")}
    enriched = []
    for meta_field in meta_fields:
        definition = by_type.get(
            f"{meta_field.get('namespace')}--{meta_field.get('key')}"
        ) or by_type.get(meta_field.get("key"))
        if definition is None:
            enriched.append(dict(meta_field))
            continue
        enriched.append(
            {
                **meta_field,
                "definition": {
                    "id": definition.get("id"),
                    "type": definition.get("type"),
                    "name": definition.get("name"),
                },
            }
        )
    return enriched


# ============================================================================
# Product projection
# ============================================================================


def _find_field_value(item: CatalogItem, namespace: str, key: str) -> str | None:
    for custom_field in item.custom_fields:
        if custom_field.namespace == namespace and custom_field.key == key:
            return custom_field.value
    return None


def parse_specifications(raw: str | None) -> Any:
    """Parse the ``specs.technical`` JSON value, None when absent or invalid."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Invalid technical specifications JSON")
        return None


def simplify_product(
    item: CatalogItem,
    resolved: dict[str, ResolvedField],
    definitions: list[dict[str, Any]],
    exclude_meta_taxonomies: bool = False,
) -> dict[str, Any]:
    """Project a fully fetched item into the export shape.

    Args:
        item: Item fetched with full fields.
        resolved: Its resolved metafields.
        definitions: Metaobject definitions of the shop.
        exclude_meta_taxonomies: Leave out the complete resolved field map.

    Returns:
        Simplified product dict.
    """
    node = item.node
    variants = edge_nodes(node.get("variants"))
    first_variant = variants[0] if variants else {}
    seo = node.get("seo") or {}

    category_meta_fields = [
        {
            "key": rf.key,
            "value": rf.value,
            "type": rf.type,
            "namespace": rf.namespace,
        }
        for rf in resolved.values()
        if rf.namespace == CATEGORY_NAMESPACE
    ]

    product: dict[str, Any] = {
        "id": item.id,
        "title": item.title,
        "description": node.get("description"),
        "short_description": _find_field_value(item, *SHORT_DESCRIPTION_FIELD),
        "meta_title": seo.get("title"),
        "meta_description": seo.get("description"),
        "specifications": parse_specifications(
            _find_field_value(item, *TECHNICAL_SPECS_FIELD)
        ),
        "vendor": item.vendor,
        "sku": first_variant.get("sku"),
        "barcode": first_variant.get("barcode"),
        "images": [
            {"id": image.get("id"), "url": image.get("url")}
            for image in edge_nodes(node.get("images"))
        ],
        "category": {
            "id": item.category.id if item.category else None,
            "name": item.category_name,
        },
        "category_meta_fields": enrich_meta_fields_with_definitions(
            category_meta_fields, definitions
        ),
    }

    if not exclude_meta_taxonomies:
        product["meta_taxonomies"] = {
            full_key: rf.to_dict() for full_key, rf in resolved.items()
        }

    return product


# ============================================================================
# Paging
# ============================================================================


def _parse_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class PageWindow:
    """A page over an in-memory result list."""

    page: int
    page_size: int
    page_count: int
    total: int

    @property
    def start(self) -> int:
        """Get the index of the first item on the page."""
        return (self.page - 1) * self.page_size

    @property
    def end(self) -> int:
        """Get the index after the last item on the page."""
        return self.page * self.page_size

    def slice(self, items: list[Any]) -> list[Any]:
        """Select the page's items."""
        return items[self.start : self.end]

    def stats(self) -> dict[str, int]:
        """Build the ``stats`` object of listing responses."""
        return {
            "page": self.page,
            "page_count": self.page_count,
            "page_size": self.page_size,
            "total_products": self.total,
        }


def paginate(
    total: int,
    page: Any,
    page_size: Any,
    default_page_size: int,
    max_page_size: int,
) -> PageWindow:
    """Compute a page window from raw query parameters.

    Malformed numbers fall back to the defaults. The page is at least 1
    and the page size is clamped to ``[1, max_page_size]``. A page past
    the end yields an empty slice.

    Args:
        total: Number of items.
        page: Raw ``page`` parameter.
        page_size: Raw ``page_size`` parameter.
        default_page_size: Page size when none is given.
        max_page_size: Upper bound on the page size.

    Returns:
        PageWindow instance.
    """
    page_number = max(1, _parse_int(page or 1, 1))
    size = max(
        1,
        min(
            max_page_size,
            _parse_int(page_size or default_page_size, default_page_size),
        ),
    )
    return PageWindow(
        page=page_number,
        page_size=size,
        page_count=max(1, math.ceil(total / size)),
        total=total,
    )
