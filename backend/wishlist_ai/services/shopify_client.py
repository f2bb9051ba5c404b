"""Shopify GraphQL Admin API client.

WHAT:
    Thin wrapper for the Shopify Admin GraphQL API with:
    - Authentication handling
    - Explicit request timeout
    - Error normalisation (HTTP, transport and GraphQL errors -> ShopifyAPIError)
    - Single attempt per query (no retries)

WHY:
    Encapsulates all Shopify API interaction. Callers describe WHAT they want
    (query + variables) and get either the `data` payload or a ShopifyAPIError.

REFERENCES:
    - Shopify GraphQL Admin API: https://shopify.dev/docs/api/admin-graphql
    - Rate limits: https://shopify.dev/docs/api/usage/rate-limits
    - Global IDs: https://shopify.dev/docs/api/usage/gids
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# Default API version
DEFAULT_API_VERSION = "2024-07"

DEFAULT_TIMEOUT_SECONDS = 30.0

GID_PREFIX = "gid://shopify/"


class ShopifyAPIError(Exception):
    """Custom exception for Shopify API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Optional[List] = None):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []


def to_gid(resource: str, identifier: str) -> str:
    """Convert a numeric/plain Shopify id into a global id.

    Ids that are already global ids are returned unchanged.

    Example:
        >>> to_gid("Customer", "123")
        'gid://shopify/Customer/123'
    """
    identifier = str(identifier).strip()
    if identifier.startswith(GID_PREFIX):
        return identifier
    return f"{GID_PREFIX}{resource}/{identifier}"


class ShopifyClient:
    """GraphQL client for Shopify Admin API.

    Usage:
        client = ShopifyClient(shop_domain="mystore.myshopify.com", access_token="shpat_xxx")
        data = await client.execute(QUERY, {"customerId": "gid://shopify/Customer/1"})
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Shopify client.

        Args:
            shop_domain: Shopify store domain (e.g., "mystore.myshopify.com")
            access_token: Shopify Admin API access token
            api_version: API version to use (default: 2024-07)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}/graphql.json"
        self._transport = transport

        logger.debug(f"[SHOPIFY_CLIENT] Initialized for {shop_domain} (API version: {api_version})")

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute a GraphQL query against Shopify Admin API.

        Single attempt: throttling and transient errors are reported, not retried.

        Args:
            query: GraphQL query string
            variables: Query variables (optional)

        Returns:
            Response `data` from the GraphQL query

        Raises:
            ShopifyAPIError: On rate limiting, non-2xx, transport, JSON or GraphQL errors
        """
        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.base_url,
                    json=payload,
                    headers=headers,
                )
        except httpx.RequestError as e:
            logger.warning(f"[SHOPIFY_CLIENT] Request error: {e!r}")
            raise ShopifyAPIError(f"Request failed: {e!r}") from e

        # Handle rate limiting (429)
        if response.status_code == 429:
            logger.warning(f"[SHOPIFY_CLIENT] Rate limited by {self.shop_domain}")
            raise ShopifyAPIError("Rate limited", status_code=429)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[SHOPIFY_CLIENT] HTTP error {response.status_code}")
            raise ShopifyAPIError(
                f"HTTP error {response.status_code}",
                status_code=response.status_code,
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            # Non-JSON body
            logger.warning("[SHOPIFY_CLIENT] Invalid JSON response")
            raise ShopifyAPIError("Invalid JSON response", status_code=response.status_code) from e

        # Check for GraphQL errors
        if data.get("errors"):
            errors = data["errors"]
            error_messages = [e.get("message", str(e)) for e in errors]
            logger.error(f"[SHOPIFY_CLIENT] GraphQL errors: {error_messages}")
            raise ShopifyAPIError(
                f"GraphQL errors: {', '.join(error_messages)}",
                status_code=response.status_code,
                errors=errors,
            )

        return data.get("data") or {}
