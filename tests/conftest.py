"""Shared fixtures.

Product nodes mirror the shape returned by the Admin GraphQL API.
"""

import json
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.infrastructure.shopify_client import ShopifyAdminClient


def connection(nodes: list[dict[str, Any]]) -> dict[str, Any]:
    """Wrap nodes into a GraphQL connection."""
    return {"edges": [{"node": node} for node in nodes]}


def build_product_node(
    product_id: str,
    title: str = "Product",
    vendor: str | None = "Acme",
    product_type: str | None = "Shoes",
    collections: list[dict[str, Any]] | None = None,
    category: dict[str, Any] | None = None,
    metafields: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a product node."""
    node = {
        "id": product_id,
        "title": title,
        "vendor": vendor,
        "productType": product_type,
        "status": "ACTIVE",
        "createdAt": "2024-01-01T00:00:00Z",
        "collections": connection(collections or []),
        "category": category,
        "metafields": connection(metafields or []),
    }
    node.update(extra)
    return node


def build_metafield(
    namespace: str,
    key: str,
    value: Any,
    type: str = "single_line_text_field",
    references: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a metafield node. Lists are JSON-encoded like Shopify does."""
    metafield = {
        "id": f"gid://shopify/Metafield/{namespace}-{key}",
        "namespace": namespace,
        "key": key,
        "value": json.dumps(value) if isinstance(value, list) else value,
        "type": type,
    }
    if references is not None:
        metafield["references"] = connection(references)
    return metafield


def products_page(
    nodes: list[dict[str, Any]],
    has_next_page: bool = False,
    end_cursor: str | None = None,
) -> dict[str, Any]:
    """Build the ``data`` of a products page."""
    return {
        "products": {
            "pageInfo": {"hasNextPage": has_next_page, "endCursor": end_cursor},
            **connection(nodes),
        }
    }


@pytest.fixture
def product_node() -> Callable[..., dict[str, Any]]:
    """Factory for product nodes."""
    return build_product_node


@pytest.fixture
def metafield() -> Callable[..., dict[str, Any]]:
    """Factory for metafield nodes."""
    return build_metafield


@pytest.fixture
def page() -> Callable[..., dict[str, Any]]:
    """Factory for products pages."""
    return products_page


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a Shopify client mock with an async ``execute``."""
    client = MagicMock(spec=ShopifyAdminClient)
    client.shop_domain = "acme.myshopify.com"
    client.access_token = "shpat_test"
    client.execute = AsyncMock()
    client.validate_token = AsyncMock(return_value=None)
    client.close = AsyncMock(return_value=None)
    return client
