"""Tests for catalog, taxonomy and import endpoints."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.catalog.queries import COLLECTIONS_QUERY, METAOBJECT_DEFINITIONS_QUERY
from app.infrastructure.shopify_client import ShopifyAdminClient, ShopifyClientError

APPAREL = {"id": "gid://shopify/TaxonomyCategory/aa", "name": "Apparel"}


@pytest.fixture
def catalog_page(page, product_node, metafield) -> dict[str, Any]:
    """One page with two apparel products and one uncategorized."""
    return page(
        [
            product_node(
                "gid://shopify/Product/1",
                title="Tee",
                vendor="Acme",
                category=APPAREL,
                metafields=[metafield("specs", "size", "M")],
            ),
            product_node(
                "gid://shopify/Product/2",
                title="Shirt",
                vendor="Globex",
                category=APPAREL,
                metafields=[metafield("specs", "size", "L")],
            ),
            product_node("gid://shopify/Product/3", title="Gift card", vendor="Acme"),
        ]
    )


@pytest.fixture
def shop(mock_client: MagicMock, catalog_page: dict[str, Any]) -> MagicMock:
    """Route catalog queries to the sample page."""

    async def execute(query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        if query == METAOBJECT_DEFINITIONS_QUERY:
            return {"metaobjectDefinitions": {"edges": []}}
        if query == COLLECTIONS_QUERY:
            return {
                "collections": {
                    "edges": [{"node": {"id": "gid://shopify/Collection/1", "title": "Summer"}}]
                }
            }
        return catalog_page

    mock_client.execute.side_effect = execute
    return mock_client


class TestAuthentication:
    """Tests for the token and shop parameters."""

    def test_missing_token(self, client: TestClient) -> None:
        """Requests without token are rejected."""
        response = client.get("/upsellr/products-count", params={"shop": "acme.myshopify.com"})

        assert response.status_code == 401
        data = response.json()
        assert data["error_code"] == "UNAUTHORIZED"
        assert data["message"] == "Authentication token required. Use ?token=YOUR_TOKEN"
        assert data["request_id"] == response.headers["X-Request-ID"]

    def test_missing_shop(self, client: TestClient) -> None:
        """Requests without shop are rejected."""
        response = client.get("/upsellr/products-count", params={"token": "shpat_x"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "MISSING_PARAMETER"

    def test_rejected_token(
        self, client: TestClient, auth: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Shopify's status is passed through when it rejects the token."""
        monkeypatch.setattr(
            ShopifyAdminClient,
            "validate_token",
            AsyncMock(
                side_effect=ShopifyClientError(
                    "acme.myshopify.com", "Invalid or expired Shopify token", 401
                )
            ),
        )

        response = client.get("/upsellr/products-count", params=auth)

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired Shopify token"

    def test_unreachable_shopify(
        self, client: TestClient, auth: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Transport failures while validating are a bad gateway."""
        monkeypatch.setattr(
            ShopifyAdminClient,
            "validate_token",
            AsyncMock(side_effect=ShopifyClientError("acme.myshopify.com", "Request failed")),
        )

        response = client.get("/upsellr/products-count", params=auth)

        assert response.status_code == 502
        assert response.json()["error_code"] == "SHOPIFY_API_ERROR"


class TestProductsExport:
    """Tests for GET /upsellr/products-export."""

    def test_export(self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]) -> None:
        """Export returns stats and simplified products."""
        response = shop_client.get("/upsellr/products-export", params=auth)

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-cache"
        data = response.json()
        assert data["stats"] == {
            "page": 1,
            "page_count": 1,
            "page_size": 250,
            "total_products": 3,
        }
        assert [p["title"] for p in data["products"]] == ["Tee", "Shirt", "Gift card"]

    def test_export_with_filters(
        self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]
    ) -> None:
        """Bracketed list filters and paging are honoured."""
        response = shop_client.get(
            "/upsellr/products-export",
            params={
                **auth,
                "categories_included[]": ["Apparel"],
                "page": "2",
                "page_size": "1",
            },
        )

        data = response.json()
        assert data["stats"]["total_products"] == 2
        assert data["stats"]["page_count"] == 2
        assert [p["id"] for p in data["products"]] == ["gid://shopify/Product/2"]

    def test_invalid_remote_response(
        self, shop_client: TestClient, mock_client: MagicMock, auth: dict[str, str]
    ) -> None:
        """Pages Shopify cannot serve end in a 502."""
        mock_client.execute.side_effect = ShopifyClientError(
            "acme.myshopify.com", "Invalid Shopify response", 200
        )

        response = shop_client.get("/upsellr/products-export", params=auth)

        assert response.status_code == 502
        assert response.json()["error_code"] == "REMOTE_RESPONSE_INVALID"


class TestCountAndFacets:
    """Tests for count, filter options and thesaurus."""

    def test_count(self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]) -> None:
        """Count applies node-side filters."""
        response = shop_client.get(
            "/upsellr/products-count", params={**auth, "categories_excluded": "Apparel"}
        )

        assert response.status_code == 200
        assert response.json() == {"products_count": 1}

    def test_filters(self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]) -> None:
        """Filter options list every facet."""
        response = shop_client.get("/upsellr/products-filters", params=auth)

        data = response.json()
        assert data["collections"] == [
            {"value": "gid://shopify/Collection/1", "label": "Summer"}
        ]
        assert data["vendors"] == [
            {"value": "Acme", "label": "Acme"},
            {"value": "Globex", "label": "Globex"},
        ]

    def test_thesaurus(self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]) -> None:
        """Thesaurus brands are numbered from 1."""
        response = shop_client.get("/upsellr/thesaurus", params=auth)

        assert response.json()["brands"] == [
            {"value": "1", "label": "Acme"},
            {"value": "2", "label": "Globex"},
        ]


class TestTaxonomyEndpoints:
    """Tests for the category taxonomy endpoints."""

    def test_category_taxonomies(
        self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]
    ) -> None:
        """A category scope returns its fields."""
        response = shop_client.get(
            "/upsellr/category-meta-taxonomies", params={**auth, "category": "Apparel"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["products_count"] == 2
        assert data["meta_taxonomies"][0]["key"] == "size"

    def test_unknown_product(
        self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]
    ) -> None:
        """Unknown products are a 404."""
        response = shop_client.get(
            "/upsellr/category-meta-taxonomies",
            params={**auth, "product_id": "gid://shopify/Product/404"},
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Product not found"

    def test_suggestions_require_category(
        self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]
    ) -> None:
        """category is mandatory for suggestions."""
        response = shop_client.get("/upsellr/category-meta-suggestions", params=auth)

        assert response.status_code == 400
        assert response.json()["message"] == "The 'category' parameter is required"

    def test_suggestions(
        self, shop_client: TestClient, shop: MagicMock, auth: dict[str, str]
    ) -> None:
        """Suggestions carry frequency percentages."""
        response = shop_client.get(
            "/upsellr/category-meta-suggestions", params={**auth, "category": "Apparel"}
        )

        assert response.status_code == 200
        [suggestion] = response.json()["suggestions"]
        assert suggestion["frequency_percentage"] == 100
        assert suggestion["values"] == ["M", "L"]


class TestProductsImport:
    """Tests for POST /upsellr/products-import."""

    def test_products_required(self, shop_client: TestClient, auth: dict[str, str]) -> None:
        """A body without a products list is rejected."""
        response = shop_client.post("/upsellr/products-import", params=auth, json={})
        assert response.status_code == 422

        response = shop_client.post(
            "/upsellr/products-import", params=auth, json={"products": "nope"}
        )
        assert response.status_code == 422

    def test_import(
        self, shop_client: TestClient, mock_client: MagicMock, auth: dict[str, str]
    ) -> None:
        """Each product gets a result."""
        mock_client.execute.return_value = {
            "productCreate": {"product": {"id": "gid://shopify/Product/9"}, "userErrors": []}
        }

        response = shop_client.post(
            "/upsellr/products-import",
            params=auth,
            json={"products": [{"title": "Tee", "upsellr_raw_id": "u-1"}, {}]},
        )

        assert response.status_code == 200
        assert response.json()["results"] == [
            {
                "status": "ok",
                "error": None,
                "shopify_id": "gid://shopify/Product/9",
                "upsellr_raw_id": "u-1",
                "variant_errors": [],
                "collection_errors": [],
            }
        ]
