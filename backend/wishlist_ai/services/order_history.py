"""Order history fetcher.

WHAT:
    Issues ONE Shopify Admin GraphQL query for a customer's 10 most recent
    orders (with up to 10 line items each) plus the wishlisted product's
    title, category and max variant price, and maps the response into typed
    dataclasses.

WHY:
    The scoring pipeline needs a small, bounded sample of purchase behaviour.
    This is intentionally not a full history: no pagination, no retries.

FAILURE POLICY:
    Fails closed. Any transport error, non-2xx response, GraphQL error,
    timeout or missing product makes fetch() return None. The state manager
    treats None as "scoring unavailable", never as a fatal error.

REFERENCES:
    - wishlist_ai/services/shopify_client.py (transport)
    - wishlist_ai/services/features.py (consumer of OrderHistoryData)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from wishlist_ai.exceptions import FetchUnavailable
from wishlist_ai.services.shopify_client import (
    DEFAULT_API_VERSION,
    ShopifyAPIError,
    ShopifyClient,
    to_gid,
)

logger = logging.getLogger(__name__)

ORDER_LIMIT = 10
LINE_ITEM_LIMIT = 10

GET_CUSTOMER_ORDER_HISTORY = """
query GetCustomerOrderHistory($customerId: ID!, $productId: ID!) {
    customer(id: $customerId) {
        id
        orders(first: %(orders)d, sortKey: CREATED_AT, reverse: true) {
            edges {
                node {
                    id
                    name
                    createdAt
                    totalPriceSet {
                        shopMoney {
                            amount
                            currencyCode
                        }
                    }
                    lineItems(first: %(line_items)d) {
                        edges {
                            node {
                                title
                                quantity
                                variant {
                                    id
                                    product {
                                        productType
                                    }
                                }
                            }
                        }
                    }
                }
            }
        }
    }
    product(id: $productId) {
        id
        title
        productType
        priceRangeV2 {
            maxVariantPrice {
                amount
                currencyCode
            }
        }
    }
}
""" % {"orders": ORDER_LIMIT, "line_items": LINE_ITEM_LIMIT}


# =============================================================================
# Typed response contract
# =============================================================================

@dataclass(frozen=True)
class OrderLineItem:
    title: str
    quantity: int
    category: Optional[str]  # owning product's productType


@dataclass(frozen=True)
class OrderSummary:
    id: str
    name: str
    created_at: Optional[str]
    total_amount: Optional[str]  # raw amount string from Shopify; parsed by the feature extractor
    currency_code: Optional[str]
    line_items: List[OrderLineItem] = field(default_factory=list)


@dataclass(frozen=True)
class TargetProduct:
    id: str
    title: str
    category: Optional[str]
    max_price: Optional[str]
    max_price_currency: Optional[str]


@dataclass(frozen=True)
class OrderHistoryData:
    orders: List[OrderSummary]
    product: TargetProduct

    @property
    def order_ids(self) -> List[str]:
        return [order.id for order in self.orders]


# =============================================================================
# Response parsing
# =============================================================================

def _edges(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not connection:
        return []
    return [edge.get("node") or {} for edge in connection.get("edges") or []]


def _parse_line_item(node: Dict[str, Any]) -> OrderLineItem:
    variant = node.get("variant") or {}
    product = variant.get("product") or {}
    try:
        quantity = int(node.get("quantity") or 0)
    except (TypeError, ValueError):
        quantity = 0
    return OrderLineItem(
        title=node.get("title") or "",
        quantity=quantity,
        category=product.get("productType") or None,
    )


def _parse_order(node: Dict[str, Any]) -> OrderSummary:
    shop_money = (node.get("totalPriceSet") or {}).get("shopMoney") or {}
    return OrderSummary(
        id=node.get("id") or "",
        name=node.get("name") or "",
        created_at=node.get("createdAt"),
        total_amount=shop_money.get("amount"),
        currency_code=shop_money.get("currencyCode"),
        line_items=[_parse_line_item(li) for li in _edges(node.get("lineItems"))],
    )


def parse_order_history(data: Dict[str, Any]) -> OrderHistoryData:
    """Map the GraphQL `data` payload into OrderHistoryData.

    Raises:
        FetchUnavailable: If the product is missing from the response
    """
    product_node = data.get("product")
    if not product_node:
        raise FetchUnavailable("Product not found in order history response")

    max_price = ((product_node.get("priceRangeV2") or {}).get("maxVariantPrice")) or {}
    product = TargetProduct(
        id=product_node.get("id") or "",
        title=product_node.get("title") or "",
        category=product_node.get("productType") or None,
        max_price=max_price.get("amount"),
        max_price_currency=max_price.get("currencyCode"),
    )

    # An unknown customer (customer: null) simply has no orders
    customer = data.get("customer") or {}
    orders = [_parse_order(node) for node in _edges(customer.get("orders"))]

    return OrderHistoryData(orders=orders[:ORDER_LIMIT], product=product)


# =============================================================================
# Fetcher
# =============================================================================

class OrderHistoryFetcher:
    """Fetch a bounded order-history sample for scoring.

    Usage:
        fetcher = OrderHistoryFetcher(api_version="2024-07", timeout=10.0)
        history = await fetcher.fetch("123", "456", "mystore.myshopify.com", "shpat_xxx")
        if history is None:
            ...  # scoring unavailable
    """

    def __init__(
        self,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    async def fetch(
        self,
        customer_id: str,
        product_id: str,
        shop: str,
        access_token: str,
    ) -> Optional[OrderHistoryData]:
        client = ShopifyClient(
            shop_domain=shop,
            access_token=access_token,
            api_version=self.api_version,
            timeout=self.timeout,
            transport=self._transport,
        )
        variables = {
            "customerId": to_gid("Customer", customer_id),
            "productId": to_gid("Product", product_id),
        }

        try:
            data = await client.execute(GET_CUSTOMER_ORDER_HISTORY, variables)
            history = parse_order_history(data)
        except (ShopifyAPIError, FetchUnavailable) as e:
            logger.warning(
                f"[ORDER_HISTORY] Fetch failed for shop={shop} customer={customer_id} "
                f"product={product_id}: {e}"
            )
            return None
        except Exception as e:
            logger.exception(f"[ORDER_HISTORY] Unexpected error for shop={shop}: {type(e).__name__}: {e}")
            return None

        logger.info(
            f"[ORDER_HISTORY] Fetched {len(history.orders)} orders for customer={customer_id} "
            f"product={product_id} (category: {history.product.category})"
        )
        return history
