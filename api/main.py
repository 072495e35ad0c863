"""
FastAPI gateway for the restock alerts service.

This application forwards requests to the upstream catalog and notification
services:
1. Catalog views (/all, /available)
2. Subscribe and unsubscribe (/notify, /notify/remove)

It holds no business logic: upstream responses pass through, and failures
are translated into fixed error responses.

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from gateway.catalog_proxy import CatalogProxy
from gateway.notification_gateway import NotificationGateway
from gateway.transport import HttpTransport, Transport
from shared.config import Settings, configure_logging
from shared.errors import FetchError, RemoteRejection, TransportError
from shared.models import NotifyRequest

configure_logging(Settings.from_env().log_level)

logger = logging.getLogger("gateway_api")

# Module-level instances, replaced in tests via reset_api_state
_settings: Optional[Settings] = None
_transport: Optional[Transport] = None


def get_settings() -> Settings:
    """Get the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_transport() -> Transport:
    """Get the upstream transport instance."""
    global _transport
    if _transport is None:
        settings = get_settings()
        _transport = HttpTransport(settings.upstream_url, timeout=settings.request_timeout)
    return _transport


def reset_api_state(
    transport: Optional[Transport] = None,
    settings: Optional[Settings] = None,
) -> None:
    """Reset API state (for testing)."""
    global _transport, _settings
    _transport = transport
    _settings = settings


def get_catalog_proxy(transport: Transport = Depends(get_transport)) -> CatalogProxy:
    return CatalogProxy(transport)


def get_notification_gateway(transport: Transport = Depends(get_transport)) -> NotificationGateway:
    return NotificationGateway(transport)


# Application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info(f"Starting restock alerts gateway -> {get_settings().upstream_url}")
    yield
    if isinstance(_transport, HttpTransport):
        await _transport.close()
    logger.info("Shutting down")


app = FastAPI(
    title="Restock Alerts Gateway",
    description="""
    Pass-through gateway to the upstream catalog and notification services.

    ## Endpoints

    - `/all`, `/available` - Catalog views, forwarded verbatim
    - `/notify`, `/notify/remove` - Subscribe or unsubscribe an email for a product
    """,
    version="1.0.0",
    lifespan=lifespan,
)


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "restock-alerts-gateway"}


# =============================================================================
# Catalog Endpoints
# =============================================================================

@app.get("/all", tags=["Catalog"])
async def get_all_products(proxy: CatalogProxy = Depends(get_catalog_proxy)):
    """Get every product in the upstream catalog."""
    try:
        products = await proxy.fetch_all()
    except FetchError:
        return JSONResponse({"error": "Failed to fetch products"}, status_code=500)
    return JSONResponse(products)


@app.get("/available", tags=["Catalog"])
async def get_available_products(proxy: CatalogProxy = Depends(get_catalog_proxy)):
    """Get the products the upstream currently reports as available."""
    try:
        products = await proxy.fetch_available()
    except FetchError:
        return JSONResponse({"error": "Failed to fetch available products"}, status_code=500)
    return JSONResponse(products)


# =============================================================================
# Notification Endpoints
# =============================================================================

@app.post("/notify", tags=["Notifications"])
async def subscribe(
    request: NotifyRequest,
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Subscribe an email to restock notifications for a product.

    An upstream rejection is relayed with the upstream's status and body.
    """
    try:
        await gateway.subscribe(request.email, request.product)
    except RemoteRejection as e:
        return PlainTextResponse(e.detail, status_code=e.status_code)
    except TransportError:
        return PlainTextResponse("Failed to subscribe to notifications", status_code=500)
    return Response(content="", status_code=200)


@app.post("/notify/remove", tags=["Notifications"])
async def unsubscribe(
    request: NotifyRequest,
    gateway: NotificationGateway = Depends(get_notification_gateway),
):
    """
    Unsubscribe an email from restock notifications for a product.

    An upstream rejection is relayed with the upstream's status and body.
    """
    try:
        await gateway.unsubscribe(request.email, request.product)
    except RemoteRejection as e:
        return PlainTextResponse(e.detail, status_code=e.status_code)
    except TransportError:
        return PlainTextResponse("Failed to unsubscribe from notifications", status_code=500)
    return Response(content="", status_code=200)
