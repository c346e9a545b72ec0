"""Small formatting helpers shared by the API, seed data and catalog sync."""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

_NON_SLUG_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_REPEATED_HYPHENS = re.compile(r"-{2,}")
_NON_PRICE_CHARS = re.compile(r"[^\d.]")

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}


def generate_slug(text: str) -> str:
    """Turn a display name into a URL slug.

    >>> generate_slug("Home & Kitchen")
    'home-kitchen'
    """
    slug = _NON_SLUG_CHARS.sub("", text.lower())
    slug = _WHITESPACE.sub("-", slug.strip())
    slug = _REPEATED_HYPHENS.sub("-", slug)
    return slug.strip("-")


def parse_price(text: Optional[str]) -> Optional[Decimal]:
    """Parse a scraped price string such as ``"$1,299.99"``.

    Returns None when no number can be recovered.
    """
    if not text:
        return None
    cleaned = _NON_PRICE_CHARS.sub("", text)
    if not cleaned or cleaned == ".":
        return None
    try:
        return Decimal(cleaned).quantize(Decimal("0.01"))
    except InvalidOperation:
        return None


def format_currency(amount: Union[Decimal, float, int], currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), "")
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    formatted = f"{sign}{symbol}{abs(value):,.2f}"
    return formatted if symbol else f"{formatted} {currency.upper()}"


def format_date(value: Union[date, datetime]) -> str:
    """Format a date as ``January 5, 2025``."""
    return f"{value:%B} {value.day}, {value.year}"


def to_cents(amount: Union[Decimal, float, int]) -> int:
    """Convert a currency amount to integer minor units."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1")))
