"""
Domain models for the restock alerts service.

Catalog entries are snapshots owned by the upstream catalog service; this
service only reads them. Subscription records are owned locally and persisted
with camelCase keys so the stored layout stays compatible with the web client's
browser storage format.

Design decisions:
- Using Pydantic for validation and serialization
- Catalog and subscription models are frozen; updates replace whole records
- Mappings keep upstream iteration order, which the catalog view preserves
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from shared.errors import FetchError


# =============================================================================
# Catalog
# =============================================================================

class Product(BaseModel):
    """
    A single catalog entry, identified by its name in the catalog mapping.

    ``available`` is the upstream 0/1 stock flag.
    """
    available: int = Field(..., ge=0, le=1, description="1 when in stock, 0 otherwise")
    price: float = Field(..., ge=0, description="Current price")
    images: list[str] = Field(default_factory=list, description="Image URLs, primary first")

    model_config = ConfigDict(frozen=True)

    @property
    def in_stock(self) -> bool:
        return self.available == 1


# Mapping of product name -> Product, in upstream order
ProductsData = dict[str, Product]


def parse_catalog(raw: dict[str, Any], endpoint: str = "") -> ProductsData:
    """
    Validate a verbatim catalog mapping into Product models.

    Raises:
        FetchError: If any entry does not look like a product.
    """
    products: ProductsData = {}
    for name, entry in raw.items():
        try:
            products[name] = Product.model_validate(entry)
        except PydanticValidationError as e:
            raise FetchError(
                f"Invalid catalog entry {name!r}: {e.error_count()} validation error(s)",
                endpoint=endpoint,
            ) from e
    return products


# =============================================================================
# Subscriptions
# =============================================================================

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionRecord(BaseModel):
    """
    A locally tracked subscription for one product.

    Exactly one record exists per subscribed product; subscribing again with
    another email replaces it.
    """
    email: str = Field(..., description="Address the upstream will notify")
    subscribed_at: datetime = Field(default_factory=utc_now, alias="subscribedAt")
    product_name: str = Field(..., alias="productName")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("subscribed_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Timestamps stored without an offset are UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_storage(self) -> dict[str, Any]:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# Mapping of product name -> SubscriptionRecord
SubscriptionStore = dict[str, SubscriptionRecord]


class SubscriptionStats(BaseModel):
    """Aggregate view over the subscription store."""
    total_subscriptions: int = Field(0, alias="totalSubscriptions")
    unique_emails: int = Field(0, alias="uniqueEmails")
    email_breakdown: dict[str, int] = Field(default_factory=dict, alias="emailBreakdown")
    oldest_subscription: Optional[SubscriptionRecord] = Field(None, alias="oldestSubscription")

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Gateway payloads
# =============================================================================

class NotifyRequest(BaseModel):
    """Body of the subscribe and unsubscribe calls."""
    email: str
    product: str
