"""
Client for the upstream catalog service.

Fetches the two catalog views, all products and currently available
products. Each call is a fresh fetch with no retries or caching, and every
failure mode (transport, non-2xx, body that is not a JSON object) surfaces
as a FetchError.
"""

import json
import logging
from typing import Any

from gateway.transport import Transport
from shared.errors import FetchError, TransportError

logger = logging.getLogger("catalog_proxy")

ALL_PATH = "/all"
AVAILABLE_PATH = "/available"


class CatalogProxy:
    """Pass-through fetcher for the catalog views."""

    def __init__(self, transport: Transport):
        self.transport = transport

    async def _fetch(self, path: str) -> dict[str, Any]:
        try:
            response = await self.transport.get(path)
        except TransportError as e:
            logger.error(f"Catalog fetch {path} failed: {e}")
            raise FetchError(str(e), endpoint=path) from e

        if not response.ok:
            logger.error(f"Catalog fetch {path} returned HTTP {response.status}")
            raise FetchError(f"HTTP {response.status} from {path}", endpoint=path)

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            logger.error(f"Catalog fetch {path} returned invalid JSON")
            raise FetchError(f"Invalid JSON from {path}: {response.text[:200]}", endpoint=path) from e

        if not isinstance(data, dict):
            raise FetchError(f"Expected a product mapping from {path}", endpoint=path)

        logger.info(f"Fetched {len(data)} product(s) from {path}")
        return data

    async def fetch_all(self) -> dict[str, Any]:
        """Fetch the full catalog mapping verbatim."""
        return await self._fetch(ALL_PATH)

    async def fetch_available(self) -> dict[str, Any]:
        """Fetch the available-products mapping verbatim."""
        return await self._fetch(AVAILABLE_PATH)
