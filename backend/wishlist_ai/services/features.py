"""Purchase-behaviour feature extraction.

Pure functions, no I/O. Turns the bounded order-history sample and the
wishlisted product into the compact FeatureSummary the scoring prompt is
built from.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

from wishlist_ai.services.order_history import OrderSummary, TargetProduct

FALLBACK_CURRENCY = "USD"

CENTS = Decimal("0.01")

# Amounts at or above 10^15 are treated as garbage; keeps sums and
# cent quantization inside the default 28-digit decimal context
MAX_AMOUNT_EXPONENT = 14


@dataclass(frozen=True)
class FeatureSummary:
    total_orders: int
    total_spent: Decimal
    currency_code: str
    avg_order_value: Decimal
    purchased_categories: frozenset
    has_bought_similar: bool

    # Target product
    product_title: str
    product_category: Optional[str]
    product_max_price: Decimal
    product_currency: str


def parse_amount(value: Optional[str]) -> Decimal:
    """Parse a Shopify money amount; anything non-numeric or implausibly large counts as 0."""
    if value is None:
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite() or amount.adjusted() > MAX_AMOUNT_EXPONENT:
        return Decimal("0")
    return amount


def _categories(orders: Iterable[OrderSummary]) -> frozenset:
    return frozenset(
        item.category
        for order in orders
        for item in order.line_items
        if item.category
    )


def extract_features(orders: Sequence[OrderSummary], product: TargetProduct) -> FeatureSummary:
    """Derive the FeatureSummary for one customer/product pair.

    - total_spent sums each order's total (non-numeric amounts contribute 0)
    - avg_order_value is 0 when there are no orders
    - currency comes from the first (most recent) order, else FALLBACK_CURRENCY
    """
    total_orders = len(orders)
    total_spent = sum((parse_amount(order.total_amount) for order in orders), Decimal("0"))

    if total_orders > 0:
        avg_order_value = (total_spent / total_orders).quantize(CENTS)
    else:
        avg_order_value = Decimal("0")

    currency_code = FALLBACK_CURRENCY
    if orders and orders[0].currency_code:
        currency_code = orders[0].currency_code

    purchased_categories = _categories(orders)

    return FeatureSummary(
        total_orders=total_orders,
        total_spent=total_spent,
        currency_code=currency_code,
        avg_order_value=avg_order_value,
        purchased_categories=purchased_categories,
        has_bought_similar=bool(product.category) and product.category in purchased_categories,
        product_title=product.title,
        product_category=product.category,
        product_max_price=parse_amount(product.max_price),
        product_currency=product.max_price_currency or currency_code,
    )


def summarize_order(order: OrderSummary) -> str:
    """Human-readable one-liner stored on the conversion record.

    Example: "#1001 · 2024-05-01 · 100.00 USD · 2x Sneaker, 1x Sock"
    """
    parts = [order.name or order.id]
    if order.created_at:
        parts.append(order.created_at[:10])
    parts.append(f"{parse_amount(order.total_amount)} {order.currency_code or FALLBACK_CURRENCY}")
    items = ", ".join(f"{item.quantity}x {item.title}" for item in order.line_items)
    if items:
        parts.append(items)
    return " · ".join(parts)
