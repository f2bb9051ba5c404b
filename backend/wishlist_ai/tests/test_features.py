"""Tests for purchase-behaviour feature extraction.

WHAT: extract_features / summarize_order / parse_amount
WHY: The scoring prompt is only as good as these aggregates; they must be
     deterministic and tolerant of messy Shopify amounts.
"""

from decimal import Decimal

from wishlist_ai.services.features import (
    FALLBACK_CURRENCY,
    extract_features,
    parse_amount,
    summarize_order,
)
from wishlist_ai.tests.helpers import make_order, make_product, two_order_history


class TestExtractFeatures:
    def test_two_orders_totalling_150(self):
        history = two_order_history()

        features = extract_features(history.orders, history.product)

        assert features.total_orders == 2
        assert features.total_spent == Decimal("150.00")
        assert features.avg_order_value == Decimal("75.00")
        assert features.currency_code == "USD"
        assert features.purchased_categories == frozenset({"Apparel", "Accessories"})
        assert features.has_bought_similar is False
        assert features.product_title == "Trail Runner"
        assert features.product_category == "Shoes"
        assert features.product_max_price == Decimal("120.00")

    def test_no_orders_has_zero_average(self):
        features = extract_features([], make_product())

        assert features.total_orders == 0
        assert features.total_spent == Decimal("0")
        assert features.avg_order_value == Decimal("0")
        assert features.purchased_categories == frozenset()
        assert features.has_bought_similar is False
        assert features.currency_code == FALLBACK_CURRENCY

    def test_bought_similar_when_category_purchased(self):
        orders = [make_order("1", "20.00", categories=["Shoes", None])]

        features = extract_features(orders, make_product(category="Shoes"))

        assert features.has_bought_similar is True
        assert features.purchased_categories == frozenset({"Shoes"})

    def test_uncategorized_product_never_similar(self):
        orders = [make_order("1", "20.00", categories=["Shoes"])]

        features = extract_features(orders, make_product(category=None))

        assert features.has_bought_similar is False

    def test_non_numeric_amounts_contribute_zero(self):
        orders = [
            make_order("1", "abc"),
            make_order("2", None),
            make_order("3", "30.50"),
        ]

        features = extract_features(orders, make_product())

        assert features.total_orders == 3
        assert features.total_spent == Decimal("30.50")
        assert features.avg_order_value == Decimal("10.17")

    def test_implausibly_large_amounts_contribute_zero(self):
        orders = [make_order("1", "1e30"), make_order("2", "40.00")]

        features = extract_features(orders, make_product(price="9e99"))

        assert features.total_spent == Decimal("40.00")
        assert features.avg_order_value == Decimal("20.00")
        assert features.product_max_price == Decimal("0")
        assert summarize_order(orders[0]).startswith("#1 · 2024-05-01 · 0 USD")

    def test_currency_from_first_order(self):
        orders = [make_order("1", "10", currency="EUR"), make_order("2", "10", currency="USD")]

        features = extract_features(orders, make_product(currency=None))

        assert features.currency_code == "EUR"
        # Product without a price currency falls back to the order currency
        assert features.product_currency == "EUR"

    def test_is_deterministic(self):
        history = two_order_history()

        first = extract_features(history.orders, history.product)
        second = extract_features(history.orders, history.product)

        assert first == second


class TestParseAmount:
    def test_parses_decimal_strings(self):
        assert parse_amount("12.34") == Decimal("12.34")
        assert parse_amount(" 5 ") == Decimal("5")

    def test_invalid_values_are_zero(self):
        assert parse_amount(None) == Decimal("0")
        assert parse_amount("") == Decimal("0")
        assert parse_amount("NaN") == Decimal("0")
        assert parse_amount("twelve") == Decimal("0")

    def test_out_of_range_values_are_zero(self):
        assert parse_amount("1e30") == Decimal("0")
        assert parse_amount("1000000000000000") == Decimal("0")
        assert parse_amount("999999999999999.99") == Decimal("999999999999999.99")


def test_summarize_order_is_human_readable():
    order = make_order("1001", "100.00", categories=["Apparel"], name="#1001")

    summary = summarize_order(order)

    assert summary == "#1001 · 2024-05-01 · 100.00 USD · 1x Item 1"
