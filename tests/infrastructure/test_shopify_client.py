"""Tests for the Shopify Admin GraphQL client."""

import json
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from app.infrastructure.shopify_client import (
    ShopifyAdminClient,
    ShopifyClientError,
    build_admin_url,
)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    max_retries: int = 2,
) -> ShopifyAdminClient:
    client = ShopifyAdminClient(
        "acme.myshopify.com",
        "shpat_test",
        api_version="2024-01",
        max_retries=max_retries,
    )
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """Replace back-off sleeps with an inspectable mock."""
    sleep = AsyncMock()
    monkeypatch.setattr("app.infrastructure.shopify_client.asyncio.sleep", sleep)
    return sleep


class TestBuildAdminUrl:
    """Tests for build_admin_url."""

    def test_url(self) -> None:
        """URL embeds the shop and version."""
        assert (
            build_admin_url("acme.myshopify.com", "2024-01")
            == "https://acme.myshopify.com/admin/api/2024-01/graphql.json"
        )


class TestShopifyAdminClient:
    """Tests for ShopifyAdminClient."""

    @pytest.mark.asyncio
    async def test_default_headers(self) -> None:
        """The access token and request ID are sent as headers."""
        client = ShopifyAdminClient("acme.myshopify.com", "shpat_test", request_id="req-1")
        http = await client._get_client()

        assert http.headers["X-Shopify-Access-Token"] == "shpat_test"
        assert http.headers["X-Request-ID"] == "req-1"
        await client.close()

    @pytest.mark.asyncio
    async def test_execute_returns_data(self) -> None:
        """The data envelope is unwrapped and variables are posted."""
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"shop": {"id": "gid://shopify/Shop/1"}}})

        client = make_client(handler)
        data = await client.execute("{ shop { id } }", {"first": 1})

        assert data == {"shop": {"id": "gid://shopify/Shop/1"}}
        assert seen == [{"query": "{ shop { id } }", "variables": {"first": 1}}]
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_data_raises(self) -> None:
        """A body with errors and no data is an error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"errors": [{"message": "Field doesn't exist"}]})

        client = make_client(handler)
        with pytest.raises(ShopifyClientError) as exc_info:
            await client.execute("{ nope }")

        assert exc_info.value.message == "Invalid Shopify response"
        assert exc_info.value.errors == [{"message": "Field doesn't exist"}]

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        """Non-2xx answers carry their status."""
        client = make_client(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(ShopifyClientError) as exc_info:
            await client.execute("{ shop { id } }")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        """An unparseable body is an error."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ShopifyClientError):
            await client.execute("{ shop { id } }")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self) -> None:
        """Connection failures become client errors without status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(ShopifyClientError) as exc_info:
            await client.execute("{ shop { id } }")

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, no_sleep: AsyncMock) -> None:
        """429 answers are retried after the Retry-After delay."""
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "2"}),
                httpx.Response(200, json={"data": {"ok": True}}),
            ]
        )
        client = make_client(lambda request: next(responses))

        data = await client.execute("{ ok }")

        assert data == {"ok": True}
        no_sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    async def test_rate_limit_gives_up(self, no_sleep: AsyncMock) -> None:
        """Retries stop after max_retries and the 429 surfaces."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        client = make_client(handler, max_retries=2)
        with pytest.raises(ShopifyClientError) as exc_info:
            await client.execute("{ ok }")

        assert exc_info.value.status_code == 429
        assert len(calls) == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_validate_token_accepts(self) -> None:
        """A 2xx probe validates the token."""
        client = make_client(
            lambda request: httpx.Response(200, json={"data": {"shop": {"id": "1"}}})
        )
        await client.validate_token()

    @pytest.mark.asyncio
    async def test_validate_token_rejects(self) -> None:
        """A 401 probe raises with Shopify's status."""
        client = make_client(lambda request: httpx.Response(401))

        with pytest.raises(ShopifyClientError) as exc_info:
            await client.validate_token()

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_context_manager_closes(self) -> None:
        """Leaving the context closes the HTTP client."""
        async with make_client(lambda request: httpx.Response(200)) as client:
            assert client._client is not None
        assert client._client is None
