"""Query engine and statistics service for order-ingestion pipeline logs."""

__version__ = "1.0.0"
