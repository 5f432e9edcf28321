"""Shopping cart store with persistence."""

import json
import logging
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from .models import Cart, CartItem, Product
from .storage import LocalStorage

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "stationery-store"
CART_STORAGE_VERSION = 0


class CartStore:
    """
    Single source of truth for the shopping cart.

    Items keep insertion order and there is at most one item per product id.
    The item list is persisted after every change; the open/closed flag is not.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self.items: list[CartItem] = self._load()
        self.is_open = False

    def _load(self) -> list[CartItem]:
        raw = self.storage.get_item(CART_STORAGE_KEY)
        if not raw:
            return []
        try:
            envelope = json.loads(raw)
            stored = envelope.get("state", {}).get("cart", [])
        except (json.JSONDecodeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable cart: {e}")
            return []
        if not isinstance(stored, list):
            logger.warning(f"Discarding unreadable cart: expected a list, got {type(stored).__name__}")
            return []

        items: list[CartItem] = []
        seen: set[str] = set()
        for entry in stored:
            try:
                item = CartItem.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping invalid cart item: {e}")
                continue
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        logger.info(f"Loaded cart with {len(items)} item(s)")
        return items

    def _persist(self) -> None:
        envelope = {
            "state": {
                "cart": [
                    item.model_dump(
                        mode="json", by_alias=True, exclude={"subtotal"}, exclude_none=True
                    )
                    for item in self.items
                ]
            },
            "version": CART_STORAGE_VERSION,
        }
        self.storage.set_item(CART_STORAGE_KEY, json.dumps(envelope))

    def find(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == product_id:
                return item
        return None

    def add_to_cart(self, product: Product) -> None:
        """Add one unit of a product, merging with an existing item."""
        if self.find(product.id) is not None:
            self.items = [
                item.model_copy(update={"quantity": item.quantity + 1})
                if item.id == product.id
                else item
                for item in self.items
            ]
        else:
            data = product.model_dump()
            data["quantity"] = 1
            self.items = [*self.items, CartItem.model_validate(data)]
        logger.info(f"Added product {product.id} to cart")
        self._persist()

    def remove_from_cart(self, product_id: str) -> None:
        """Remove an item; absent ids are ignored."""
        self.items = [item for item in self.items if item.id != product_id]
        logger.info(f"Removed product {product_id} from cart")
        self._persist()

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set an item's quantity; zero or less removes the item."""
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return
        self.items = [
            item.model_copy(update={"quantity": quantity}) if item.id == product_id else item
            for item in self.items
        ]
        logger.info(f"Set quantity of product {product_id} to {quantity}")
        self._persist()

    def toggle_cart(self) -> bool:
        """Flip cart visibility and return the new state."""
        self.is_open = not self.is_open
        return self.is_open

    def clear_cart(self) -> None:
        self.items = []
        logger.info("Cart cleared")
        self._persist()

    @property
    def total_price(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_empty(self) -> bool:
        return not self.items

    def snapshot(self) -> Cart:
        return Cart(items=list(self.items), is_open=self.is_open)
