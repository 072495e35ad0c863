"""
Client for the upstream notification service.

Two remote operations, subscribe and unsubscribe, each a JSON POST of
``{email, product}``. A 2xx status is success; anything else is relayed as a
RemoteRejection carrying the upstream body verbatim. This client never
touches local subscription state.
"""

import logging

from gateway.transport import Transport
from shared.errors import RemoteRejection
from shared.models import NotifyRequest

logger = logging.getLogger("notification_gateway")

SUBSCRIBE_PATH = "/notify"
UNSUBSCRIBE_PATH = "/notify/remove"


class NotificationGateway:
    """Pass-through client for subscribe/unsubscribe requests."""

    def __init__(self, transport: Transport):
        self.transport = transport

    async def _send(self, path: str, email: str, product_name: str) -> None:
        request = NotifyRequest(email=email, product=product_name)
        response = await self.transport.post_json(path, request.model_dump())
        if not response.ok:
            logger.warning(
                f"Upstream rejected {path} for {product_name}: "
                f"{response.status} {response.text[:200]}"
            )
            raise RemoteRejection(response.text, status_code=response.status, endpoint=path)
        logger.info(f"Upstream accepted {path} for {product_name} ({email})")

    async def subscribe(self, email: str, product_name: str) -> None:
        """
        Ask the upstream to notify ``email`` when the product is back in stock.

        Raises:
            RemoteRejection: Upstream answered with a non-2xx status.
            TransportError: No response was received.
        """
        await self._send(SUBSCRIBE_PATH, email, product_name)

    async def unsubscribe(self, email: str, product_name: str) -> None:
        """
        Ask the upstream to stop notifying ``email`` about the product.

        Raises:
            RemoteRejection: Upstream answered with a non-2xx status.
            TransportError: No response was received.
        """
        await self._send(UNSUBSCRIBE_PATH, email, product_name)
