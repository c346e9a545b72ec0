"""Storefront - e-commerce backend with payments, support chat and catalog sync."""

__version__ = "0.1.0"
