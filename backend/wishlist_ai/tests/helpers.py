"""Builders and fakes shared by the wishlist tests.

The fakes mirror the two external collaborators:
- FakeScoringClient: same `chat.completions.create` coroutine as openai.AsyncOpenAI
- FakeOrderHistoryFetcher: same `fetch` coroutine as OrderHistoryFetcher
"""

from types import SimpleNamespace
from typing import List, Optional, Sequence, Tuple

from wishlist_ai.services.order_history import (
    OrderHistoryData,
    OrderLineItem,
    OrderSummary,
    TargetProduct,
)


class FakeCompletions:
    def __init__(self, reply: Optional[str] = "Score: 35%", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeScoringClient:
    def __init__(self, reply: Optional[str] = "Score: 35%", error: Optional[Exception] = None):
        self.completions = FakeCompletions(reply=reply, error=error)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> List[dict]:
        return self.completions.calls


class FakeOrderHistoryFetcher:
    def __init__(self, history: Optional[OrderHistoryData] = None):
        self.history = history
        self.calls: List[Tuple[str, str, str, str]] = []

    async def fetch(self, customer_id, product_id, shop, access_token):
        self.calls.append((customer_id, product_id, shop, access_token))
        return self.history


def make_order(
    order_id: str,
    amount: Optional[str],
    categories: Sequence[Optional[str]] = (),
    currency: Optional[str] = "USD",
    name: Optional[str] = None,
    created_at: Optional[str] = "2024-05-01T10:00:00Z",
) -> OrderSummary:
    return OrderSummary(
        id=f"gid://shopify/Order/{order_id}",
        name=name or f"#{order_id}",
        created_at=created_at,
        total_amount=amount,
        currency_code=currency,
        line_items=[
            OrderLineItem(title=f"Item {i}", quantity=1, category=category)
            for i, category in enumerate(categories, start=1)
        ],
    )


def make_product(
    category: Optional[str] = "Shoes",
    title: str = "Trail Runner",
    price: Optional[str] = "120.00",
    currency: Optional[str] = "USD",
) -> TargetProduct:
    return TargetProduct(
        id="gid://shopify/Product/P1",
        title=title,
        category=category,
        max_price=price,
        max_price_currency=currency,
    )


def two_order_history() -> OrderHistoryData:
    """Customer C1: two prior orders totalling 150.00, never bought Shoes."""
    return OrderHistoryData(
        orders=[
            make_order("1002", "100.00", categories=["Apparel"]),
            make_order("1001", "50.00", categories=["Accessories", "Apparel"]),
        ],
        product=make_product(category="Shoes"),
    )
