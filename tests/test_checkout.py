from decimal import Decimal

import pytest

from stationery_server.cart_store import CartStore
from stationery_server.checkout import (
    DELIVERY_AREAS,
    ORDER_SUCCESS_MESSAGE,
    CheckoutAggregator,
    calculate_total,
    find_delivery_area,
)
from stationery_server.exceptions import (
    BackendError,
    BackendUnavailableError,
    EmptyCartError,
    InputValidationError,
)
from stationery_server.models import CustomerDetails, Product

NOTEBOOK = Product(id="1", name="Premium Notebook", price=Decimal("24.99"), category="Notebooks")
PEN = Product(id="2", name="Fountain Pen Set", price=Decimal("45.99"), category="Pens")
ALICE = CustomerDetails(name="Alice", phone="0999", address="1 Main St")


@pytest.fixture
def cart(storage):
    return CartStore(storage)


@pytest.fixture
def checkout(cart, client):
    return CheckoutAggregator(cart, client)


def fill(cart):
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(PEN)


def test_delivery_area_costs():
    assert [(a.id, a.cost) for a in DELIVERY_AREAS] == [
        ("Tartous", Decimal("5")),
        ("Latakia", Decimal("7")),
        ("Homs", Decimal("10")),
        ("Damascus", Decimal("12")),
        ("Aleppo", Decimal("15")),
    ]


def test_unknown_area_is_rejected():
    with pytest.raises(InputValidationError):
        find_delivery_area("Paris")


async def test_totals_for_default_area(checkout, cart):
    fill(cart)

    assert checkout.area.id == "Tartous"
    assert checkout.subtotal == Decimal("95.97")
    assert checkout.total == Decimal("100.97")


async def test_area_change_only_changes_delivery_cost(checkout, cart):
    fill(cart)
    before = [(item.id, item.quantity) for item in cart.items]

    checkout.select_area("Aleppo")

    assert checkout.total == Decimal("110.97")
    assert checkout.total == calculate_total(cart.items, find_delivery_area("Aleppo"))
    assert [(item.id, item.quantity) for item in cart.items] == before


async def test_empty_cart_summary(checkout):
    summary = checkout.summary()
    assert summary.empty is True
    assert summary.message == "Your cart is empty"
    assert not checkout.can_submit()


async def test_empty_cart_is_never_submitted(checkout, backend):
    with pytest.raises(EmptyCartError):
        await checkout.submit(ALICE)
    assert backend.requests == []


def test_missing_customer_fields():
    with pytest.raises(InputValidationError, match="phone, address"):
        CheckoutAggregator.validate_customer("Alice", "", "")


def test_customer_fields_only_need_to_be_non_empty():
    customer = CheckoutAggregator.validate_customer("Alice", " ", "no. 7")
    assert customer.phone == " "


async def test_successful_order_clears_cart(checkout, cart, backend):
    fill(cart)
    checkout.select_area("Homs")

    message = await checkout.submit(ALICE)

    assert message == ORDER_SUCCESS_MESSAGE
    assert cart.is_empty()
    body = backend.body("POST", "/api/sendorder")
    assert body["area"] == "Homs"
    assert body["subtotal"] == 95.97
    assert body["total"] == 105.97
    assert [(line["_id"], line["quantity"]) for line in body["products"]] == [("1", 2), ("2", 1)]
    assert body["status"] == "pending"


async def test_failed_order_keeps_cart(checkout, cart, backend):
    fill(cart)
    backend.route("POST", "/api/sendorder", 500, json={"message": "Database down"})

    with pytest.raises(BackendError, match="Error placing order: Database down"):
        await checkout.submit(ALICE)

    assert [(item.id, item.quantity) for item in cart.items] == [("1", 2), ("2", 1)]


async def test_unreachable_backend_keeps_cart(checkout, cart, backend):
    fill(cart)
    backend.fail_all()

    with pytest.raises(BackendUnavailableError, match="Error placing order. Please try again."):
        await checkout.submit(ALICE)

    assert [(item.id, item.quantity) for item in cart.items] == [("1", 2), ("2", 1)]
