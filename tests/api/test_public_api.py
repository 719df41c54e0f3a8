"""Tests for the public product listing."""

import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.infrastructure.stores import InMemorySettingsStore


@pytest.fixture
def opened() -> list[tuple[str, str]]:
    """Shop domains and tokens the public clients were opened with."""
    return []


@pytest.fixture
def public_client(
    client: TestClient,
    mock_client: MagicMock,
    opened: list[tuple[str, str]],
    monkeypatch: pytest.MonkeyPatch,
) -> TestClient:
    """Test client whose public Shopify client is ``mock_client``."""

    def factory(shop_domain: str, token: str, **kwargs) -> MagicMock:
        opened.append((shop_domain, token))
        return mock_client

    monkeypatch.setattr("app.api.dependencies.ShopifyAdminClient", factory)
    return client


class TestPublicProducts:
    """Tests for GET /api/products/public."""

    def test_requires_token(self, client: TestClient) -> None:
        """Requests without token are rejected."""
        assert client.get("/api/products/public").status_code == 401

    def test_token_prefix(self, client: TestClient) -> None:
        """Tokens must carry the public prefix."""
        response = client.get("/api/products/public", params={"token": "shpat_x"})

        assert response.status_code == 401
        assert response.json()["message"] == (
            "Invalid token format. The token must start with 'shpua_'"
        )

    def test_no_shop_configured(self, client: TestClient) -> None:
        """Without configured shop there is nothing to list."""
        response = client.get("/api/products/public", params={"token": "shpua_x"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_lists_raw_nodes_of_first_shop(
        self,
        public_client: TestClient,
        settings_store: InMemorySettingsStore,
        mock_client: MagicMock,
        opened: list[tuple[str, str]],
        page,
        product_node,
    ) -> None:
        """The first configured shop is listed and its token replaced."""
        asyncio.run(settings_store.save_token("acme.myshopify.com", "old"))
        nodes = [product_node(f"gid://shopify/Product/{i}") for i in range(3)]
        mock_client.execute.return_value = page(nodes)

        response = public_client.get(
            "/api/products/public", params={"token": "shpua_new", "page_size": "2"}
        )

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-cache"
        data = response.json()
        assert data["stats"] == {
            "page": 1,
            "page_count": 2,
            "page_size": 2,
            "total_products": 3,
        }
        assert data["products"] == nodes[:2]
        assert opened == [("acme.myshopify.com", "shpua_new")]
        stored = asyncio.run(settings_store.get("acme.myshopify.com"))
        assert stored.shopify_token == "shpua_new"

    def test_named_shop(
        self,
        public_client: TestClient,
        settings_store: InMemorySettingsStore,
        mock_client: MagicMock,
        opened: list[tuple[str, str]],
        page,
    ) -> None:
        """The shop parameter selects a configured shop."""
        asyncio.run(settings_store.save_token("first.myshopify.com", "a"))
        asyncio.run(settings_store.save_token("second.myshopify.com", "b"))
        mock_client.execute.return_value = page([])

        response = public_client.get(
            "/api/products/public",
            params={"token": "shpua_new", "shop": "second.myshopify.com"},
        )

        assert response.status_code == 200
        assert opened == [("second.myshopify.com", "shpua_new")]

    def test_unknown_named_shop(self, public_client: TestClient) -> None:
        """A shop that is not configured is a 404."""
        response = public_client.get(
            "/api/products/public",
            params={"token": "shpua_new", "shop": "ghost.myshopify.com"},
        )
        assert response.status_code == 404
