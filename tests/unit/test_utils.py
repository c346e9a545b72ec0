"""Unit tests for formatting helpers."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from storefront.utils import format_currency, format_date, generate_slug, parse_price, to_cents


class TestGenerateSlug:
    """Tests for generate_slug."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Home & Kitchen", "home-kitchen"),
            ("Smartphone X", "smartphone-x"),
            ("  Laptop   Pro  ", "laptop-pro"),
            ("Sony WH-1000XM5 Wireless", "sony-wh-1000xm5-wireless"),
            ("--Already--Slugged--", "already-slugged"),
        ],
    )
    def test_slugs(self, text, expected):
        assert generate_slug(text) == expected

    def test_drops_punctuation(self):
        assert generate_slug("Apple AirPods Pro (2nd Generation)") == "apple-airpods-pro-2nd-generation"


class TestParsePrice:
    """Tests for parse_price."""

    def test_parses_formatted_price(self):
        assert parse_price("$1,299.99") == Decimal("1299.99")

    def test_quantizes_to_cents(self):
        assert parse_price("19.5") == Decimal("19.50")

    @pytest.mark.parametrize("text", [None, "", "Free", "."])
    def test_unparseable_returns_none(self, text):
        assert parse_price(text) is None


class TestFormatting:
    """Tests for currency and date formatting."""

    def test_format_currency_usd(self):
        assert format_currency(Decimal("1299.9")) == "$1,299.90"

    def test_format_currency_negative(self):
        assert format_currency(-5) == "-$5.00"

    def test_format_currency_unknown_code(self):
        assert format_currency(10, "CHF") == "10.00 CHF"

    def test_format_date(self):
        assert format_date(date(2025, 1, 5)) == "January 5, 2025"
        assert format_date(datetime(2024, 12, 25, 18, 30)) == "December 25, 2024"

    @pytest.mark.parametrize(
        "amount,cents",
        [(Decimal("799.99"), 79999), (Decimal("0.1"), 10), (12, 1200), (19.99, 1999)],
    )
    def test_to_cents(self, amount, cents):
        assert to_cents(amount) == cents
