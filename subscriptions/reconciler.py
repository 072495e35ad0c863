"""
Subscription reconciler.

Keeps the local subscription store consistent with the upstream
notification service. The rule everything here follows: local state never
runs ahead of confirmed remote state. A record is only added after the
upstream accepted the subscribe call, and only removed after it accepted the
unsubscribe call. A rejected or failed call leaves the store untouched.

Calls for the same product are serialized by a per-product lock, so a quick
unsubscribe-then-subscribe cannot be reordered in flight.

Local-only operations (forget, clear_all) are explicit user actions and do
not contact the upstream; clear_all logs which products stay subscribed
remotely.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Optional

from gateway.notification_gateway import NotificationGateway
from shared.errors import RemoteRejection, TransportError, ValidationError
from shared.models import SubscriptionRecord, SubscriptionStats
from shared.subscription_store import PersistentSubscriptionStore

logger = logging.getLogger("reconciler")


def _require_email(email: Optional[str]) -> str:
    if email is None or not email.strip():
        raise ValidationError("Please enter your email address")
    return email.strip()


class SubscriptionReconciler:
    """
    Orchestrates subscribe/unsubscribe between the upstream and local store.

    Example:
        reconciler = SubscriptionReconciler(gateway, store)
        record = await reconciler.subscribe_to("High Protein Milk", "a@x.com")
    """

    def __init__(self, gateway: NotificationGateway, store: PersistentSubscriptionStore):
        self.gateway = gateway
        self.store = store
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _lock_for(self, product_name: str) -> asyncio.Lock:
        return self._locks[product_name]

    async def subscribe_to(self, product_name: str, email: Optional[str]) -> SubscriptionRecord:
        """
        Subscribe ``email`` to restock notifications for a product.

        Returns:
            The stored record.

        Raises:
            ValidationError: Email is empty; no network call was made.
            RemoteRejection: Upstream refused; the store is unchanged.
            TransportError: Upstream unreachable; the store is unchanged.
        """
        email = _require_email(email)

        async with self._lock_for(product_name):
            await self.gateway.subscribe(email, product_name)
            updated = self.store.add(product_name, email)

        return updated[product_name]

    async def unsubscribe_from(self, product_name: str, email: Optional[str] = None) -> None:
        """
        Stop restock notifications for a product.

        The email recorded with the local subscription is sent upstream when
        one exists; ``email`` is only used for products without a record.

        Raises:
            ValidationError: No record exists and ``email`` is empty.
            RemoteRejection: Upstream refused; the store is unchanged.
            TransportError: Upstream unreachable; the store is unchanged.
        """
        async with self._lock_for(product_name):
            record = self.store.get(product_name)
            if record is not None:
                if email and email.strip() and email.strip() != record.email:
                    logger.info(
                        f"Unsubscribing {product_name} with recorded email {record.email}, "
                        f"not {email.strip()}"
                    )
                target = record.email
            else:
                target = _require_email(email)

            await self.gateway.unsubscribe(target, product_name)
            self.store.remove(product_name)

    async def unsubscribe_all(self) -> list[str]:
        """
        Unsubscribe every stored product upstream, one call at a time.

        Products the upstream did not confirm keep their local record.

        Returns:
            Names of the products that could not be unsubscribed.
        """
        failed = []
        for product_name in list(self.store.snapshot()):
            try:
                await self.unsubscribe_from(product_name)
            except (RemoteRejection, TransportError) as e:
                logger.error(f"Failed to unsubscribe {product_name}: {e}")
                failed.append(product_name)
        return failed

    async def forget(self, product_name: str) -> None:
        """Remove a product's local record without contacting the upstream."""
        async with self._lock_for(product_name):
            if self.store.get(product_name) is not None:
                logger.warning(f"Forgetting {product_name} locally; upstream subscription stays active")
            self.store.remove(product_name)

    def clear_all(self) -> None:
        """
        Drop every local record without contacting the upstream.

        The upstream keeps sending notifications for these products.
        """
        remaining = list(self.store.snapshot())
        if remaining:
            logger.warning(
                f"Clearing {len(remaining)} local subscription(s); still active upstream: "
                + ", ".join(remaining)
            )
        self.store.clear()

    def stats(self) -> SubscriptionStats:
        return self.store.stats()
