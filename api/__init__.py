"""
Gateway API for the restock alerts service.

This package provides a single FastAPI application that forwards:
- Catalog views to the upstream catalog service
- Subscribe/unsubscribe requests to the upstream notification service
"""

from api.main import app

__all__ = ["app"]
