"""Ordefy Shopify webhook ingestion and processing queue."""

__version__ = "1.0.0"
