"""
Application state for the subscription layer.

A single AppState instance is the source of truth for everything the user
sees: both catalog views, the subscription mapping, the current email and
search input, and the notices produced by recent actions. Only AppController
mutates it; renderers read it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from shared.models import ProductsData, SubscriptionStore

VIEW_ALL = "all"
VIEW_AVAILABLE = "available"
CATALOG_VIEWS = (VIEW_ALL, VIEW_AVAILABLE)


class NoticeLevel(str, Enum):
    """Severity of a user-visible notice."""
    INFO = "info"
    ERROR = "error"


@dataclass
class Notice:
    """
    User-visible outcome of an action.

    Produced for every success and every caught failure so the user always
    learns what happened.
    """
    level: NoticeLevel
    title: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_error(self) -> bool:
        return self.level == NoticeLevel.ERROR

    def __str__(self) -> str:
        marker = "✗" if self.is_error else "✓"
        return f"{marker} {self.title}: {self.message}"


@dataclass
class AppState:
    """Everything the user-facing projection is rendered from."""
    all_products: ProductsData = field(default_factory=dict)
    available_products: ProductsData = field(default_factory=dict)
    subscriptions: SubscriptionStore = field(default_factory=dict)
    email: str = ""
    active_view: str = VIEW_ALL
    search_term: str = ""
    loading: bool = False
    notices: list[Notice] = field(default_factory=list)

    @property
    def last_notice(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None
