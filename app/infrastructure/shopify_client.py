"""Shopify Admin GraphQL client.

Thin async wrapper around the Admin GraphQL endpoint of a single shop.
Handles authentication headers, request correlation, 429 back-off and
the ``data`` envelope check shared by every caller.
"""

import asyncio
from typing import Any

import httpx
import structlog

from app.infrastructure.config import settings

logger = structlog.get_logger()


SHOP_PROBE_QUERY = "{ shop { id } }"


class ShopifyClientError(Exception):
    """Error from a Shopify Admin API call.

    Raised for transport failures, non-2xx answers and bodies that
    carry no ``data`` envelope.
    """

    def __init__(
        self,
        shop_domain: str,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        self.shop_domain = shop_domain
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(f"[{shop_domain}] {message}")


def build_admin_url(shop_domain: str, api_version: str | None = None) -> str:
    """Build the Admin GraphQL URL for a shop.

    Args:
        shop_domain: Shop domain (e.g. ``example.myshopify.com``).
        api_version: Admin API version, defaults to settings.

    Returns:
        GraphQL endpoint URL.
    """
    version = api_version or settings.shopify_api_version
    return f"https://{shop_domain}/admin/api/{version}/graphql.json"


class ShopifyAdminClient:
    """HTTP client for the Admin GraphQL API of one shop.

    Example usage:
        async with ShopifyAdminClient("example.myshopify.com", token) as client:
            data = await client.execute("{ shop { id } }")
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize Shopify client.

        Args:
            shop_domain: Shop domain.
            access_token: Admin API access token.
            api_version: Admin API version.
            timeout: Request timeout in seconds.
            max_retries: Retries allowed for rate-limited (429) answers.
            request_id: Optional request ID for correlation.
        """
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.admin_url = build_admin_url(shop_domain, api_version)
        self.timeout = timeout if timeout is not None else settings.shopify_timeout_seconds
        self.max_retries = (
            max_retries if max_retries is not None else settings.shopify_max_retries
        )
        self.request_id = request_id
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": self.access_token,
            }
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ShopifyAdminClient":
        """Context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Context manager exit."""
        await self.close()

    def _retry_delay(self, attempt: int, response: httpx.Response) -> float:
        """Compute how long to wait before retrying a rate-limited call."""
        retry_after = response.headers.get("Retry-After")
        delay = settings.shopify_retry_base_delay * (2**attempt)
        if retry_after:
            try:
                delay = float(retry_after)
            except ValueError:
                pass
        return min(delay, settings.shopify_retry_max_delay)

    async def post_graphql(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """POST a GraphQL document, retrying 429 answers.

        Args:
            query: GraphQL document.
            variables: GraphQL variables.

        Returns:
            The final HTTP response, whatever its status.

        Raises:
            ShopifyClientError: On transport failure.
        """
        client = await self._get_client()
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        attempt = 0
        while True:
            try:
                response = await client.post(self.admin_url, json=payload)
            except httpx.RequestError as e:
                logger.error(
                    "Shopify API request failed",
                    shop_domain=self.shop_domain,
                    error=str(e),
                )
                raise ShopifyClientError(
                    self.shop_domain, f"Request failed: {str(e)}"
                ) from e

            if response.status_code != 429 or attempt >= self.max_retries:
                return response

            delay = self._retry_delay(attempt, response)
            attempt += 1
            logger.warning(
                "Shopify rate limited, retrying",
                shop_domain=self.shop_domain,
                attempt=attempt,
                max_retries=self.max_retries,
                delay_seconds=delay,
            )
            await asyncio.sleep(delay)

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL document and unwrap its ``data`` envelope.

        Args:
            query: GraphQL document.
            variables: GraphQL variables.

        Returns:
            The ``data`` object of the response.

        Raises:
            ShopifyClientError: On transport failure, non-2xx status or
                a body without ``data``.
        """
        response = await self.post_graphql(query, variables)

        if not response.is_success:
            raise ShopifyClientError(
                self.shop_domain,
                f"Shopify API error: {response.status_code}",
                response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ShopifyClientError(
                self.shop_domain,
                "Shopify answered with a non-JSON body",
                response.status_code,
            ) from e

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            errors = body.get("errors") if isinstance(body, dict) else None
            logger.warning(
                "Shopify response without data",
                shop_domain=self.shop_domain,
                errors=errors,
            )
            raise ShopifyClientError(
                self.shop_domain,
                "Invalid Shopify response",
                response.status_code,
                errors=errors if isinstance(errors, list) else None,
            )
        return data

    async def validate_token(self) -> None:
        """Check the access token against the shop endpoint.

        Raises:
            ShopifyClientError: When Shopify rejects the token or is
                unreachable. ``status_code`` carries Shopify's answer.
        """
        response = await self.post_graphql(SHOP_PROBE_QUERY)
        if not response.is_success:
            logger.warning(
                "Shopify token rejected",
                shop_domain=self.shop_domain,
                status_code=response.status_code,
            )
            raise ShopifyClientError(
                self.shop_domain,
                "Invalid or expired Shopify token",
                response.status_code,
            )
