"""
Catalog view: what the user sees.

Combines one of the two fetched catalog views with the subscription set and
the current search term. The "available" view is whatever the upstream
reported; it is never derived from "all" by filtering on the stock flag.
"""

from dataclasses import dataclass

from shared.models import Product, ProductsData
from subscriptions.state import CATALOG_VIEWS, VIEW_ALL, AppState


@dataclass(frozen=True)
class ProductCard:
    """One row of the rendered catalog."""
    name: str
    product: Product
    subscribed: bool

    @property
    def in_stock(self) -> bool:
        return self.product.in_stock


def filter_products(products: ProductsData, search_term: str) -> list[tuple[str, Product]]:
    """
    Case-insensitive substring match on product names.

    Preserves the mapping's order; an empty term matches everything.
    """
    needle = search_term.lower()
    return [(name, product) for name, product in products.items() if needle in name.lower()]


class CatalogView:
    """Read-only projection over AppState."""

    def __init__(self, state: AppState):
        self.state = state

    def select_catalog(self, view: str) -> ProductsData:
        """
        Get the fetched mapping for a view.

        Raises:
            ValueError: If ``view`` is not "all" or "available".
        """
        if view not in CATALOG_VIEWS:
            raise ValueError(f"Unknown catalog view: {view}")
        if view == VIEW_ALL:
            return self.state.all_products
        return self.state.available_products

    def filter(self, products: ProductsData, search_term: str) -> list[tuple[str, Product]]:
        return filter_products(products, search_term)

    def is_subscribed(self, name: str) -> bool:
        return name in self.state.subscriptions

    def visible(self) -> list[ProductCard]:
        """Rows for the active view and search term."""
        products = self.select_catalog(self.state.active_view)
        return [
            ProductCard(name=name, product=product, subscribed=self.is_subscribed(name))
            for name, product in self.filter(products, self.state.search_term)
        ]
