import logging
from decimal import Decimal
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .database import CART_KEY
from .models import CartItem, CartKey, Product, ProductVariant, cart_key

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(List[CartItem])


class CartStore:
    """
    The session's shopping cart.

    Entries are unique by (product id, variant id); the variant id is None for
    plain products. The whole collection is written to ``storage`` after every
    mutation and read back once when the store is constructed.
    Reads hand out copies, so entries only change through the methods below.
    """

    def __init__(self, storage, key: str = CART_KEY) -> None:
        self.storage = storage
        self.key = key
        self._items: List[CartItem] = self._restore()

    # ---------------------------
    # Persistence
    # ---------------------------
    def _restore(self) -> List[CartItem]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            items = _items_adapter.validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Failed to parse cart data, starting with an empty cart: {e}")
            return []
        # Drop duplicates a hand-edited snapshot may contain; first entry wins
        seen = set()
        out = []
        for item in items:
            if item.key not in seen:
                seen.add(item.key)
                out.append(item)
        return out

    def _persist(self) -> None:
        self.storage.set_item(self.key, _items_adapter.dump_json(self._items).decode("utf-8"))

    def _find(self, key: CartKey) -> Optional[CartItem]:
        for item in self._items:
            if item.key == key:
                return item
        return None

    # ---------------------------
    # Mutations
    # ---------------------------
    def add_item(self, product: Product, quantity: int = 1, variant: Optional[ProductVariant] = None) -> CartItem:
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        key = cart_key(product.id, variant.id if variant else None)
        existing = self._find(key)
        if existing is not None:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(
                product=product,
                quantity=quantity,
                selected_variant=variant,
                weight_kg=variant.weight_kg if variant else None,
            )
            self._items.append(item)
        self._persist()
        logger.debug(f"Cart add {key} x{quantity} -> {item.quantity}")
        return item.model_copy(deep=True)

    def remove_item(self, product_id: str, variant_id: Optional[str] = None) -> None:
        # Without a variant id only the plain (variant-less) entry matches
        key = cart_key(product_id, variant_id)
        self._items = [item for item in self._items if item.key != key]
        self._persist()

    def update_quantity(self, product_id: str, quantity: int, variant_id: Optional[str] = None) -> None:
        if quantity <= 0:
            self.remove_item(product_id, variant_id)
            return
        item = self._find(cart_key(product_id, variant_id))
        if item is None:
            return
        item.quantity = quantity
        self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self._persist()

    # ---------------------------
    # Reads
    # ---------------------------
    @property
    def items(self) -> List[CartItem]:
        return [item.model_copy(deep=True) for item in self._items]

    def get_item(self, product_id: str, variant_id: Optional[str] = None) -> Optional[CartItem]:
        item = self._find(cart_key(product_id, variant_id))
        return item.model_copy(deep=True) if item is not None else None

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def total_price(self) -> Decimal:
        return sum((item.line_total for item in self._items), Decimal("0"))

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)
