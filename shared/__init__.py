"""
Shared infrastructure for the restock alerts service.

This package contains code used by the gateway API, the subscription layer
and the CLI:
- Domain models (Product, SubscriptionRecord, SubscriptionStats)
- Error hierarchy
- Settings loaded from the environment
- Durable key-value storage and the persistent subscription store
"""

from shared.models import (
    Product,
    ProductsData,
    SubscriptionRecord,
    SubscriptionStats,
    SubscriptionStore,
    NotifyRequest,
    parse_catalog,
)
from shared.data_store import JsonFileStorage, KeyValueStorage, MemoryStorage
from shared.subscription_store import PersistentSubscriptionStore

__all__ = [
    "Product",
    "ProductsData",
    "SubscriptionRecord",
    "SubscriptionStats",
    "SubscriptionStore",
    "NotifyRequest",
    "parse_catalog",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "PersistentSubscriptionStore",
]
