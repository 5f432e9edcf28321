"""Checkout: delivery areas, order totals and order submission."""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .cart_store import CartStore
from .exceptions import EmptyCartError, InputValidationError
from .models import (
    CartItem,
    CustomerDetails,
    DeliveryArea,
    Money,
    OrderLine,
    OrderPayload,
    OrderStatus,
)
from .stationery_client import StationeryClient

logger = logging.getLogger(__name__)

DELIVERY_AREAS = [
    DeliveryArea(id="Tartous", name="Tartous", cost=Decimal("5")),
    DeliveryArea(id="Latakia", name="Latakia", cost=Decimal("7")),
    DeliveryArea(id="Homs", name="Homs", cost=Decimal("10")),
    DeliveryArea(id="Damascus", name="Damascus", cost=Decimal("12")),
    DeliveryArea(id="Aleppo", name="Aleppo", cost=Decimal("15")),
]

ORDER_SUCCESS_MESSAGE = "Order placed successfully! We will contact you soon."
EMPTY_CART_MESSAGE = "Your cart is empty"


def find_delivery_area(area_id: str) -> DeliveryArea:
    for area in DELIVERY_AREAS:
        if area.id == area_id:
            return area
    raise InputValidationError(f"Unknown delivery area: {area_id}")


def calculate_subtotal(items: Iterable[CartItem]) -> Decimal:
    return sum((item.price * item.quantity for item in items), Decimal("0"))


def calculate_total(items: Iterable[CartItem], area: DeliveryArea) -> Decimal:
    return calculate_subtotal(items) + area.cost


class CheckoutSummary(BaseModel):
    """What the checkout view shows."""

    empty: bool
    items: list[CartItem] = Field(default_factory=list)
    area: DeliveryArea
    areas: list[DeliveryArea] = Field(default_factory=lambda: list(DELIVERY_AREAS))
    subtotal: Money = Decimal("0")
    delivery_cost: Money = Decimal("0")
    total: Money = Decimal("0")
    message: Optional[str] = None


class CheckoutAggregator:
    """
    Computes order totals from the cart and submits orders.

    The selected delivery area is transient and never persisted.
    """

    def __init__(
        self,
        cart_store: CartStore,
        client: StationeryClient,
        area: Optional[DeliveryArea] = None,
    ) -> None:
        self.cart_store = cart_store
        self.client = client
        self.area = area or DELIVERY_AREAS[0]

    def select_area(self, area_id: str) -> DeliveryArea:
        self.area = find_delivery_area(area_id)
        return self.area

    @property
    def subtotal(self) -> Decimal:
        return calculate_subtotal(self.cart_store.items)

    @property
    def delivery_cost(self) -> Decimal:
        return self.area.cost

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.delivery_cost

    def can_submit(self) -> bool:
        """Submission is only offered for a non-empty cart."""
        return not self.cart_store.is_empty()

    def summary(self) -> CheckoutSummary:
        if not self.can_submit():
            return CheckoutSummary(empty=True, area=self.area, message=EMPTY_CART_MESSAGE)
        return CheckoutSummary(
            empty=False,
            items=list(self.cart_store.items),
            area=self.area,
            subtotal=self.subtotal,
            delivery_cost=self.delivery_cost,
            total=self.total,
        )

    @staticmethod
    def validate_customer(name: str, phone: str, address: str) -> CustomerDetails:
        """Check that the required customer fields are non-empty; content is not validated."""
        missing = [
            label
            for label, value in (("name", name), ("phone", phone), ("address", address))
            if not value
        ]
        if missing:
            raise InputValidationError(f"Please fill in the required field(s): {', '.join(missing)}")
        return CustomerDetails(name=name, phone=phone, address=address)

    def build_order(self, customer: CustomerDetails) -> OrderPayload:
        """Snapshot the cart into an order payload."""
        items = list(self.cart_store.items)
        subtotal = calculate_subtotal(items)
        return OrderPayload(
            name=customer.name,
            phone=customer.phone,
            address=customer.address,
            area=self.area.name,
            products=[
                OrderLine(id=item.id, name=item.name, quantity=item.quantity, price=item.price)
                for item in items
            ],
            subtotal=subtotal,
            total=subtotal + self.area.cost,
            status=OrderStatus.PENDING.value,
        )

    async def submit(self, customer: CustomerDetails) -> str:
        """
        Place the order and clear the cart on success.

        Args:
            customer: Validated customer details

        Returns:
            Success message

        Raises:
            EmptyCartError: The cart is empty
            BackendError: The backend rejected the order; the cart is kept
            BackendUnavailableError: The backend could not be reached; the cart is kept
        """
        if not self.can_submit():
            raise EmptyCartError(EMPTY_CART_MESSAGE)

        payload = self.build_order(customer)
        logger.info(f"Submitting order for {customer.name} to {self.area.name}")
        await self.client.send_order(payload)
        self.cart_store.clear_cart()
        return ORDER_SUCCESS_MESSAGE
