import logging
from typing import List, Optional

from .events import ProductChange, ProductEvent
from .exceptions import StorefrontException
from .models import Category, Product

logger = logging.getLogger(__name__)


class ProductCatalog:
    """
    Products and categories loaded from the backend.

    The catalog refetches whenever a refresh is requested on the event bus or
    the backend reports a product change. Load failures are kept in ``error``
    for display and the previously loaded lists stay in place.
    """

    def __init__(self, backend, admin: bool = False, autoload: bool = True) -> None:
        self.backend = backend
        self.admin = admin
        self.products: List[Product] = []
        self.categories: List[Category] = []
        self.error: Optional[str] = None
        self.loaded = False
        self._unsubscribers = [
            backend.bus.subscribe_many(
                (ProductEvent.REFRESH_PRODUCTS, ProductEvent.FORCE_PRODUCT_REFRESH), self._on_event
            ),
            backend.subscribe_to_product_changes(self._on_event),
        ]
        if autoload:
            self.refresh()

    def _on_event(self, change: ProductChange) -> None:
        logger.info(f"{change.event.value} received, refreshing catalog")
        self.refresh()

    def refresh(self) -> bool:
        if not self.backend.is_configured:
            self.error = "Backend is not configured. Connect the storefront to its backend first."
            return False
        try:
            products = self.backend.list_products(admin=self.admin)
            categories = self.backend.list_categories(admin=self.admin)
        except StorefrontException as e:
            logger.error(f"Error fetching catalog: {e}")
            self.error = str(e)
            return False
        self.products = products
        self.categories = categories
        self.error = None
        self.loaded = True
        logger.info(f"Loaded {len(products)} products, {len(categories)} categories")
        return True

    def get(self, product_id: str) -> Optional[Product]:
        for p in self.products:
            if p.id == product_id:
                return p
        return None

    def search(self, term: str) -> List[Product]:
        term = term.strip().lower()
        if not term:
            return list(self.products)
        return [
            p for p in self.products
            if term in p.name.lower() or any(term in t.lower() for t in p.tags)
        ]

    def by_category(self, category_id: Optional[str]) -> List[Product]:
        if not category_id:
            return list(self.products)
        return [p for p in self.products if p.category == category_id]

    def featured(self) -> List[Product]:
        return [p for p in self.products if p.featured]

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
