"""Tests for the order history fetcher and Shopify client.

WHAT: One GraphQL request per fetch, mapped into OrderHistoryData
WHY: The fetcher must fail closed (None) on every upstream problem so a
     Shopify hiccup only costs the score, never the wishlist add.
"""

import asyncio
import json

import httpx

from wishlist_ai.services.order_history import (
    ORDER_LIMIT,
    OrderHistoryFetcher,
    parse_order_history,
)
from wishlist_ai.services.shopify_client import ShopifyAPIError, ShopifyClient, to_gid

SHOP = "test-store.myshopify.com"
TOKEN = "shpat_test_token"


def _order_node(order_id, amount, product_type="Apparel"):
    return {
        "node": {
            "id": f"gid://shopify/Order/{order_id}",
            "name": f"#{order_id}",
            "createdAt": "2024-05-01T10:00:00Z",
            "totalPriceSet": {"shopMoney": {"amount": amount, "currencyCode": "USD"}},
            "lineItems": {
                "edges": [
                    {
                        "node": {
                            "title": "Hoodie",
                            "quantity": 2,
                            "variant": {
                                "id": "gid://shopify/ProductVariant/9",
                                "product": {"productType": product_type},
                            },
                        }
                    }
                ]
            },
        }
    }


def _payload(customer=True, product=True):
    data = {
        "customer": None,
        "product": None,
    }
    if customer:
        data["customer"] = {
            "id": "gid://shopify/Customer/C1",
            "orders": {"edges": [_order_node("1002", "100.00"), _order_node("1001", "50.00", "Accessories")]},
        }
    if product:
        data["product"] = {
            "id": "gid://shopify/Product/P1",
            "title": "Trail Runner",
            "productType": "Shoes",
            "priceRangeV2": {"maxVariantPrice": {"amount": "120.00", "currencyCode": "USD"}},
        }
    return {"data": data}


def _fetcher(handler):
    return OrderHistoryFetcher(api_version="2024-07", timeout=1.0, transport=httpx.MockTransport(handler))


def _fetch(fetcher):
    return asyncio.run(fetcher.fetch("C1", "P1", SHOP, TOKEN))


class TestToGid:
    def test_plain_id_is_wrapped(self):
        assert to_gid("Customer", "123") == "gid://shopify/Customer/123"

    def test_global_id_is_unchanged(self):
        assert to_gid("Product", "gid://shopify/Product/5") == "gid://shopify/Product/5"


class TestParseOrderHistory:
    def test_maps_orders_and_product(self):
        history = parse_order_history(_payload()["data"])

        assert history.order_ids == ["gid://shopify/Order/1002", "gid://shopify/Order/1001"]
        first = history.orders[0]
        assert first.total_amount == "100.00"
        assert first.currency_code == "USD"
        assert first.line_items[0].title == "Hoodie"
        assert first.line_items[0].quantity == 2
        assert first.line_items[0].category == "Apparel"
        assert history.product.title == "Trail Runner"
        assert history.product.category == "Shoes"
        assert history.product.max_price == "120.00"

    def test_unknown_customer_has_no_orders(self):
        history = parse_order_history(_payload(customer=False)["data"])

        assert history.orders == []
        assert history.product.title == "Trail Runner"

    def test_orders_capped_at_limit(self):
        data = _payload()["data"]
        data["customer"]["orders"]["edges"] = [_order_node(str(i), "1.00") for i in range(ORDER_LIMIT + 5)]

        history = parse_order_history(data)

        assert len(history.orders) == ORDER_LIMIT


class TestOrderHistoryFetcher:
    def test_sends_single_authenticated_query(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=_payload())

        history = _fetch(_fetcher(handler))

        assert history is not None
        assert len(history.orders) == 2
        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == f"https://{SHOP}/admin/api/2024-07/graphql.json"
        assert request.headers["X-Shopify-Access-Token"] == TOKEN
        body = json.loads(request.content)
        assert body["variables"] == {
            "customerId": "gid://shopify/Customer/C1",
            "productId": "gid://shopify/Product/P1",
        }
        assert "orders(first: 10" in body["query"]

    def test_graphql_errors_return_none(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Access denied for orders field"}]})

        assert _fetch(_fetcher(handler)) is None

    def test_rate_limit_returns_none(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "2"})

        assert _fetch(_fetcher(handler)) is None

    def test_http_error_returns_none_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        assert _fetch(_fetcher(handler)) is None
        assert len(calls) == 1

    def test_timeout_returns_none(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert _fetch(_fetcher(handler)) is None

    def test_invalid_json_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="<html>not json</html>")

        assert _fetch(_fetcher(handler)) is None

    def test_missing_product_returns_none(self):
        def handler(request):
            return httpx.Response(200, json=_payload(product=False))

        assert _fetch(_fetcher(handler)) is None

    def test_unknown_customer_still_returns_history(self):
        def handler(request):
            return httpx.Response(200, json=_payload(customer=False))

        history = _fetch(_fetcher(handler))

        assert history is not None
        assert history.orders == []


class TestShopifyClientExecute:
    """Every upstream failure is one attempt and one ShopifyAPIError."""

    def _execute(self, handler):
        calls = []

        def counting_handler(request):
            calls.append(request)
            return handler(request)

        client = ShopifyClient(
            shop_domain=SHOP,
            access_token=TOKEN,
            timeout=1.0,
            transport=httpx.MockTransport(counting_handler),
        )
        try:
            return asyncio.run(client.execute("{ shop { id } }")), None, calls
        except ShopifyAPIError as e:
            return None, e, calls

    def test_returns_data_payload(self):
        data, error, calls = self._execute(lambda request: httpx.Response(200, json={"data": {"shop": {"id": "1"}}}))

        assert error is None
        assert data == {"shop": {"id": "1"}}
        assert len(calls) == 1
        # No variables key when none are given
        assert "variables" not in json.loads(calls[0].content)

    def test_rate_limit_is_not_retried(self):
        data, error, calls = self._execute(lambda request: httpx.Response(429, headers={"Retry-After": "2"}))

        assert data is None
        assert error.status_code == 429
        assert len(calls) == 1

    def test_throttled_graphql_error_is_not_retried(self):
        data, error, calls = self._execute(
            lambda request: httpx.Response(200, json={"errors": [{"message": "Throttled"}]})
        )

        assert error.errors == [{"message": "Throttled"}]
        assert len(calls) == 1

    def test_server_error_carries_status(self):
        data, error, calls = self._execute(lambda request: httpx.Response(503, text="unavailable"))

        assert error.status_code == 503
        assert len(calls) == 1

    def test_invalid_json(self):
        data, error, calls = self._execute(lambda request: httpx.Response(200, text="oops"))

        assert "Invalid JSON" in str(error)
        assert len(calls) == 1
