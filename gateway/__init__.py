"""
Clients for the upstream services.

This package holds the pass-through network layer:
- Transport: aiohttp-backed HTTP exchange with a bounded timeout
- CatalogProxy: fetches the "all" and "available" catalog views
- NotificationGateway: forwards subscribe/unsubscribe requests
"""

from gateway.transport import HttpResponse, HttpTransport, Transport
from gateway.catalog_proxy import CatalogProxy
from gateway.notification_gateway import NotificationGateway

__all__ = [
    "HttpResponse",
    "HttpTransport",
    "Transport",
    "CatalogProxy",
    "NotificationGateway",
]
