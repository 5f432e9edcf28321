"""Stationery Hub storefront and admin dashboard server."""

__version__ = "0.1.0"
