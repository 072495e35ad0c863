"""
Outbound HTTP transport shared by the catalog proxy and notification gateway.

The transport only moves bytes: it returns whatever status and body the
remote produced and raises TransportError when no response arrived at all.
Interpreting statuses and bodies is left to the clients built on top of it.

Design decisions:
- aiohttp session created lazily inside the running event loop
- One bounded timeout per call; expiry is a transport failure
- A Protocol so tests can pass in-memory fakes
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

import aiohttp

from shared.errors import TransportError

logger = logging.getLogger("transport")


@dataclass(frozen=True)
class HttpResponse:
    """Status and raw body of a completed HTTP exchange."""
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body as JSON (raises json.JSONDecodeError)."""
        return json.loads(self.text)


class Transport(Protocol):
    """Structural transport interface used by the gateway clients."""

    async def get(self, path: str) -> HttpResponse:
        ...

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> HttpResponse:
        ...


class HttpTransport:
    """
    aiohttp-backed transport bound to one base URL.

    Example:
        transport = HttpTransport("https://amul-notifications.onrender.com")
        try:
            response = await transport.get("/all")
        finally:
            await transport.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the transport.

        Args:
            base_url: URL prefix for every request, without trailing slash.
            timeout: Total seconds allowed per request.
            session: Existing session to reuse. The transport only closes
                sessions it created itself.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def _request(self, method: str, path: str, **kwargs: Any) -> HttpResponse:
        url = f"{self.base_url}{path}"
        session = await self._get_session()
        logger.debug(f"{method} {url}")
        try:
            async with session.request(method, url, timeout=self.timeout, **kwargs) as resp:
                text = await resp.text()
                return HttpResponse(status=resp.status, text=text)
        except asyncio.TimeoutError as e:
            raise TransportError(f"Request to {path} timed out", endpoint=path) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {path} failed: {e}", endpoint=path) from e

    async def get(self, path: str) -> HttpResponse:
        return await self._request("GET", path)

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> HttpResponse:
        return await self._request("POST", path, json=dict(payload))

    async def close(self) -> None:
        """Close the underlying session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
