"""
Subscription reconciliation layer.

This package keeps local subscriptions consistent with the upstream
notification service and projects them over the catalog:
- SubscriptionReconciler mutates the local store only after remote success
- CatalogView filters a catalog view and flags subscribed products
- AppController owns the AppState and turns failures into notices
"""

from subscriptions.state import AppState, Notice, NoticeLevel
from subscriptions.catalog_view import CatalogView, ProductCard, filter_products
from subscriptions.reconciler import SubscriptionReconciler
from subscriptions.controller import AppController

__all__ = [
    "AppState",
    "Notice",
    "NoticeLevel",
    "CatalogView",
    "ProductCard",
    "filter_products",
    "SubscriptionReconciler",
    "AppController",
]
