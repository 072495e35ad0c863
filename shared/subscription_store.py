"""
Persistent subscription store.

Keeps the mapping of product name -> SubscriptionRecord in durable key-value
storage so subscriptions survive process restarts.

Persisted layout:
- ``productSubscriptions``: JSON-encoded mapping of product name to record
- ``userEmail``: last-used email as a plain string, used to pre-fill forms

Design decisions:
- Every mutation rewrites the full mapping (no incremental writes)
- Bad stored data never raises on load; it yields an empty store plus a
  StorageCorruption warning for the caller to surface
- Mutations return a fresh mapping; callers never share the internal copy
- A store that was never loaded loads itself on first access, so a
  mutation never overwrites records it has not seen
"""

import json
import logging
from collections import Counter
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from shared.data_store import KeyValueStorage
from shared.errors import StorageCorruption
from shared.models import (
    SubscriptionRecord,
    SubscriptionStats,
    SubscriptionStore,
    utc_now,
)

logger = logging.getLogger("subscription_store")

SUBSCRIPTIONS_KEY = "productSubscriptions"
USER_EMAIL_KEY = "userEmail"


def encode_subscriptions(store: SubscriptionStore) -> str:
    """Encode a store into its persisted JSON form."""
    return json.dumps({name: record.to_storage() for name, record in store.items()})


def decode_subscriptions(raw: str) -> SubscriptionStore:
    """
    Decode the persisted JSON form of a store.

    Raises:
        StorageCorruption: If the text is not a mapping of valid records,
            or a record's product name differs from its key.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageCorruption(f"Subscriptions are not valid JSON: {e}", key=SUBSCRIPTIONS_KEY) from e
    if not isinstance(data, dict):
        raise StorageCorruption("Subscriptions are not a JSON object", key=SUBSCRIPTIONS_KEY)
    try:
        store = {name: SubscriptionRecord.model_validate(entry) for name, entry in data.items()}
    except PydanticValidationError as e:
        raise StorageCorruption(f"Invalid subscription record: {e}", key=SUBSCRIPTIONS_KEY) from e

    for name, record in store.items():
        if record.product_name != name:
            raise StorageCorruption(
                f"Record under {name!r} is for {record.product_name!r}",
                key=SUBSCRIPTIONS_KEY,
            )
    return store


def compute_stats(store: SubscriptionStore) -> SubscriptionStats:
    """
    Summarize a store.

    The oldest subscription is the record with the earliest ``subscribed_at``;
    ties go to the record that comes first in iteration order.
    """
    records = list(store.values())
    breakdown = Counter(record.email for record in records)
    oldest = min(records, key=lambda r: r.subscribed_at) if records else None
    return SubscriptionStats(
        total_subscriptions=len(records),
        unique_emails=len(breakdown),
        email_breakdown=dict(breakdown),
        oldest_subscription=oldest,
    )


class PersistentSubscriptionStore:
    """
    Durable store of subscription records keyed by product name.

    Example:
        store = PersistentSubscriptionStore(JsonFileStorage(Path("state.json")))
        subscriptions, warning = store.load()
        subscriptions = store.add("High Protein Milk", "a@x.com")
    """

    def __init__(self, storage: KeyValueStorage):
        """
        Initialize the store.

        Args:
            storage: Backend the store reads from and writes to.
        """
        self.storage = storage
        self._subscriptions: SubscriptionStore = {}
        self._loaded = False

    # =========================================================================
    # Loading and saving
    # =========================================================================

    def load(self) -> tuple[SubscriptionStore, Optional[StorageCorruption]]:
        """
        Read the store from durable storage.

        Returns:
            The loaded store and, if stored data was malformed, the
            StorageCorruption describing it. Missing data is not a warning.
        """
        try:
            raw = self.storage.get(SUBSCRIPTIONS_KEY)
            self._subscriptions = decode_subscriptions(raw) if raw is not None else {}
        except StorageCorruption as e:
            logger.warning(f"Error loading subscriptions, starting empty: {e}")
            self._subscriptions = {}
            self._loaded = True
            return {}, e

        self._loaded = True
        logger.info(f"Loaded {len(self._subscriptions)} subscription(s)")
        return dict(self._subscriptions), None

    def save(self, store: SubscriptionStore) -> None:
        """
        Persist the full store, replacing whatever was stored before.

        Also caches the email of the last record in iteration order as the
        last-used email. An empty store leaves the cached email alone.
        """
        self.storage.set(SUBSCRIPTIONS_KEY, encode_subscriptions(store))
        self._subscriptions = dict(store)
        self._loaded = True

        if store:
            last_record = list(store.values())[-1]
            self.storage.set(USER_EMAIL_KEY, last_record.email)

    def _current(self) -> SubscriptionStore:
        # First access reads what is persisted
        if not self._loaded:
            self.load()
        return self._subscriptions

    def last_email(self) -> Optional[str]:
        """Get the cached last-used email, if any."""
        try:
            return self.storage.get(USER_EMAIL_KEY)
        except StorageCorruption as e:
            logger.warning(f"Error loading cached email: {e}")
            return None

    # =========================================================================
    # Mutations
    # =========================================================================

    def add(self, product_name: str, email: str) -> SubscriptionStore:
        """
        Insert or overwrite the record for a product, then persist.

        The record moves to the end of iteration order, which makes its email
        the cached last-used email.
        """
        updated = dict(self._current())
        updated.pop(product_name, None)
        updated[product_name] = SubscriptionRecord(
            email=email,
            subscribed_at=utc_now(),
            product_name=product_name,
        )
        self.save(updated)
        logger.info(f"Stored subscription: {product_name} -> {email}")
        return dict(updated)

    def remove(self, product_name: str) -> SubscriptionStore:
        """Delete the record for a product if present, then persist."""
        updated = dict(self._current())
        if updated.pop(product_name, None) is not None:
            logger.info(f"Removed subscription: {product_name}")
        self.save(updated)
        return dict(updated)

    def clear(self) -> SubscriptionStore:
        """Reset to an empty store and erase the cached email."""
        self.save({})
        self.storage.delete(USER_EMAIL_KEY)
        logger.info("Cleared all subscriptions")
        return {}

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, product_name: str) -> Optional[SubscriptionRecord]:
        return self._current().get(product_name)

    def snapshot(self) -> SubscriptionStore:
        """Get a copy of the current store."""
        return dict(self._current())

    def stats(self, store: Optional[SubscriptionStore] = None) -> SubscriptionStats:
        """Compute statistics for ``store``, or for the current store."""
        return compute_stats(self._current() if store is None else store)
