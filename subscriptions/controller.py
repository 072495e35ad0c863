"""
Application controller for the subscription layer.

The controller owns the AppState and is the only thing that mutates it.
Each user action goes through one method here, which calls the appropriate
component, copies the outcome into the state, and records a Notice. Every
RestockError is caught at this boundary: the session stays usable after any
failure, and the user always sees what happened.

Control flow for a subscription:
    CatalogView (search/select)
      -> SubscriptionReconciler.subscribe_to
        -> NotificationGateway.subscribe (remote)
        -> PersistentSubscriptionStore.add (only on success)
      -> AppState.subscriptions refreshed from the store
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from gateway.catalog_proxy import CatalogProxy
from gateway.notification_gateway import NotificationGateway
from shared.errors import (
    FetchError,
    RemoteRejection,
    StorageError,
    TransportError,
    ValidationError,
)
from shared.models import SubscriptionRecord, SubscriptionStats, parse_catalog
from shared.subscription_store import PersistentSubscriptionStore
from subscriptions.catalog_view import CatalogView, ProductCard
from subscriptions.reconciler import SubscriptionReconciler
from subscriptions.state import (
    CATALOG_VIEWS,
    VIEW_ALL,
    VIEW_AVAILABLE,
    AppState,
    Notice,
    NoticeLevel,
)

logger = logging.getLogger("controller")


class AppController:
    """
    Single owner of the application state.

    Example:
        controller = AppController(store, CatalogProxy(t), NotificationGateway(t))
        await controller.startup()
        await controller.subscribe("High Protein Milk", "a@x.com")
        for card in controller.visible_products():
            print(card.name, card.subscribed)
    """

    def __init__(
        self,
        store: PersistentSubscriptionStore,
        catalog_proxy: CatalogProxy,
        gateway: NotificationGateway,
        state: Optional[AppState] = None,
        verify_catalog: bool = True,
    ):
        """
        Initialize the controller.

        Args:
            store: Persistent subscription store.
            catalog_proxy: Fetcher for the catalog views.
            gateway: Client for the upstream notification service.
            state: Initial state (defaults to an empty one).
            verify_catalog: Log products reported available but missing from
                the full catalog.
        """
        self.store = store
        self.catalog_proxy = catalog_proxy
        self.state = state or AppState()
        self.reconciler = SubscriptionReconciler(gateway, store)
        self.view = CatalogView(self.state)
        self.verify_catalog = verify_catalog

    # =========================================================================
    # Notices
    # =========================================================================

    def _notify(self, level: NoticeLevel, title: str, message: str) -> Notice:
        notice = Notice(level=level, title=title, message=message)
        self.state.notices.append(notice)
        if notice.is_error:
            logger.warning(f"[NOTICE] {title}: {message}")
        else:
            logger.info(f"[NOTICE] {title}: {message}")
        return notice

    def _info(self, title: str, message: str) -> Notice:
        return self._notify(NoticeLevel.INFO, title, message)

    def _error(self, title: str, message: str) -> Notice:
        return self._notify(NoticeLevel.ERROR, title, message)

    def _sync_subscriptions(self) -> None:
        self.state.subscriptions = self.store.snapshot()

    # =========================================================================
    # Startup
    # =========================================================================

    async def startup(self) -> None:
        """Load persisted subscriptions, then fetch both catalog views."""
        self.load_subscriptions()
        await self.refresh_catalogs()

    def load_subscriptions(self) -> None:
        """Load the store and pre-fill the email from the last-used one."""
        subscriptions, warning = self.store.load()
        self.state.subscriptions = subscriptions
        if warning is not None:
            self._error("Storage Error", "Failed to load your subscription preferences")

        cached_email = self.store.last_email()
        if cached_email:
            self.state.email = cached_email

    async def refresh_catalogs(self) -> None:
        """
        Fetch both catalog views concurrently.

        Each view is updated independently as soon as it resolves; one
        failing fetch neither blocks nor discards the other.
        """
        self.state.loading = True
        try:
            loaded = await asyncio.gather(
                self._load_view(VIEW_ALL, self.catalog_proxy.fetch_all),
                self._load_view(VIEW_AVAILABLE, self.catalog_proxy.fetch_available),
            )
        finally:
            self.state.loading = False

        if all(loaded) and self.verify_catalog:
            self.check_catalog_consistency()

    async def _load_view(
        self,
        view: str,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
    ) -> bool:
        try:
            raw = await fetch()
            products = parse_catalog(raw)
        except FetchError as e:
            logger.error(f"Could not load the {view} catalog: {e}")
            self._error("Error", "Failed to fetch products")
            return False

        if view == VIEW_ALL:
            self.state.all_products = products
        else:
            self.state.available_products = products
        return True

    def check_catalog_consistency(self) -> list[str]:
        """
        Find products reported available that are missing from the full catalog.

        Discrepancies are logged, never corrected.
        """
        missing = [
            name for name in self.state.available_products
            if name not in self.state.all_products
        ]
        if missing:
            logger.warning(
                f"{len(missing)} available product(s) missing from the full catalog: "
                + ", ".join(missing)
            )
        return missing

    # =========================================================================
    # User actions
    # =========================================================================

    async def subscribe(
        self, product_name: str, email: Optional[str] = None
    ) -> Optional[SubscriptionRecord]:
        """
        Subscribe to restock notifications for a product.

        Uses ``email`` when given (and remembers it as the current email),
        otherwise the current email from the state.

        Returns:
            The stored record, or None if the subscription failed.
        """
        if email is not None:
            self.state.email = email

        try:
            record = await self.reconciler.subscribe_to(product_name, self.state.email)
        except ValidationError:
            self._error("Email Required", "Please enter your email address")
            return None
        except RemoteRejection as e:
            self._error("Subscription Failed", e.detail)
            return None
        except TransportError:
            self._error("Error", "Failed to subscribe to notifications")
            return None
        except StorageError as e:
            logger.error(f"Subscribed upstream but could not persist {product_name}: {e}")
            self._error("Storage Error", "Failed to save your subscription preferences")
            return None
        finally:
            self._sync_subscriptions()

        self._info("Subscribed!", f"You'll be notified when {product_name} becomes available")
        return record

    async def unsubscribe(self, product_name: str, email: Optional[str] = None) -> bool:
        """
        Unsubscribe from a product.

        Returns:
            True if the upstream confirmed and the local record was removed.
        """
        try:
            await self.reconciler.unsubscribe_from(
                product_name, email if email is not None else self.state.email
            )
        except ValidationError:
            self._error("Email Required", "Please enter your email address")
            return False
        except RemoteRejection as e:
            self._error("Unsubscribe Failed", e.detail)
            return False
        except TransportError:
            self._error("Error", "Failed to unsubscribe from notifications")
            return False
        except StorageError as e:
            logger.error(f"Unsubscribed upstream but could not persist {product_name}: {e}")
            self._error("Storage Error", "Failed to save your subscription preferences")
            return False
        finally:
            self._sync_subscriptions()

        self._info("Unsubscribed", f"You won't receive notifications for {product_name}")
        return True

    async def unsubscribe_all(self) -> list[str]:
        """
        Unsubscribe every stored product upstream.

        Returns:
            Names of products that are still subscribed afterwards.
        """
        try:
            failed = await self.reconciler.unsubscribe_all()
        except StorageError as e:
            logger.error(f"Failed to persist after unsubscribing: {e}")
            self._error("Storage Error", "Failed to save your subscription preferences")
            self._sync_subscriptions()
            return list(self.state.subscriptions)

        self._sync_subscriptions()
        if failed:
            self._error("Unsubscribe Failed", "Could not unsubscribe from: " + ", ".join(failed))
        else:
            self._info("Cleared", "All subscriptions have been cleared")
        return failed

    async def forget(self, product_name: str) -> bool:
        """Remove a product from the local list only."""
        try:
            await self.reconciler.forget(product_name)
        except StorageError as e:
            logger.error(f"Error removing {product_name}: {e}")
            self._error("Storage Error", "Failed to save your subscription preferences")
            return False
        finally:
            self._sync_subscriptions()

        self._info("Removed", f"Unsubscribed from {product_name}")
        return True

    def clear_all(self) -> bool:
        """Clear every local subscription without contacting the upstream."""
        try:
            self.reconciler.clear_all()
        except StorageError as e:
            logger.error(f"Error clearing subscriptions: {e}")
            self._error("Error", "Failed to clear subscriptions")
            return False
        finally:
            self._sync_subscriptions()

        self._info("Cleared", "All subscriptions have been cleared")
        return True

    def search(self, term: str) -> list[ProductCard]:
        self.state.search_term = term
        return self.visible_products()

    def select_view(self, view: str) -> list[ProductCard]:
        """
        Switch between the "all" and "available" catalogs.

        Raises:
            ValueError: If ``view`` is not a known catalog view.
        """
        if view not in CATALOG_VIEWS:
            raise ValueError(f"Unknown catalog view: {view}")
        self.state.active_view = view
        return self.visible_products()

    # =========================================================================
    # Projections
    # =========================================================================

    def visible_products(self) -> list[ProductCard]:
        return self.view.visible()

    def subscriptions_newest_first(self) -> list[SubscriptionRecord]:
        """Subscription list ordered the way it is shown to the user."""
        return sorted(
            self.state.subscriptions.values(),
            key=lambda r: r.subscribed_at,
            reverse=True,
        )

    def stats(self) -> SubscriptionStats:
        return self.reconciler.stats()
