import json
from decimal import Decimal

import pytest

from stationery_server.cart_store import CART_STORAGE_KEY, CartStore
from stationery_server.models import Product
from stationery_server.storage import LocalStorage

NOTEBOOK = Product(id="p1", name="Premium Notebook", price=Decimal("24.99"), category="Notebooks")
PEN = Product(id="p2", name="Fountain Pen Set", price=Decimal("45.99"), category="Pens")


@pytest.fixture
def cart(storage):
    return CartStore(storage)


def test_adding_same_product_twice_merges(cart):
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(NOTEBOOK)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2
    assert cart.item_count == 2


def test_items_keep_insertion_order(cart):
    cart.add_to_cart(PEN)
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(PEN)

    assert [item.id for item in cart.items] == ["p2", "p1"]


def test_update_quantity_to_zero_removes(cart):
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(PEN)

    cart.update_quantity("p1", 0)
    assert [item.id for item in cart.items] == ["p2"]

    cart.update_quantity("p2", -3)
    assert cart.is_empty()


def test_update_and_remove_unknown_ids_are_noops(cart):
    cart.add_to_cart(NOTEBOOK)

    cart.update_quantity("nope", 4)
    cart.remove_from_cart("nope")

    assert [(item.id, item.quantity) for item in cart.items] == [("p1", 1)]


def test_total_is_sum_of_line_subtotals(cart):
    cart.add_to_cart(NOTEBOOK)
    cart.update_quantity("p1", 3)
    cart.add_to_cart(PEN)

    snapshot = cart.snapshot()
    assert cart.total_price == Decimal("120.96")
    assert snapshot.total == sum(item.subtotal for item in snapshot.items)
    assert snapshot.item_count == 4


def test_cart_survives_reload(storage_file):
    cart = CartStore(LocalStorage(storage_file))
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(NOTEBOOK)
    cart.add_to_cart(PEN)

    reloaded = CartStore(LocalStorage(storage_file))
    assert [(item.id, item.quantity) for item in reloaded.items] == [("p1", 2), ("p2", 1)]
    assert reloaded.total_price == Decimal("95.97")


def test_storage_envelope_format(cart, storage):
    cart.add_to_cart(NOTEBOOK)

    envelope = json.loads(storage.get_item(CART_STORAGE_KEY))
    assert envelope["version"] == 0
    [stored] = envelope["state"]["cart"]
    assert stored["_id"] == "p1"
    assert stored["quantity"] == 1
    assert stored["price"] == 24.99


def test_open_flag_is_not_persisted(storage_file):
    cart = CartStore(LocalStorage(storage_file))
    cart.add_to_cart(NOTEBOOK)
    assert cart.toggle_cart() is True

    reloaded = CartStore(LocalStorage(storage_file))
    assert reloaded.is_open is False


def test_duplicate_and_invalid_stored_items_are_dropped(storage):
    storage.set_item(
        CART_STORAGE_KEY,
        json.dumps(
            {
                "state": {
                    "cart": [
                        {"_id": "p1", "name": "Notebook", "price": 24.99, "quantity": 1},
                        {"_id": "p1", "name": "Notebook", "price": 24.99, "quantity": 5},
                        {"_id": "p2", "name": "Pen", "price": 3, "quantity": 0},
                    ]
                },
                "version": 0,
            }
        ),
    )

    cart = CartStore(storage)
    assert [(item.id, item.quantity) for item in cart.items] == [("p1", 1)]



@pytest.mark.parametrize("stored", [None, 7, "p1", {"_id": "p1"}])
def test_non_list_stored_cart_starts_empty(storage, stored):
    storage.set_item(CART_STORAGE_KEY, json.dumps({"state": {"cart": stored}, "version": 0}))

    cart = CartStore(storage)

    assert cart.is_empty()
    cart.add_to_cart(NOTEBOOK)
    assert [item.id for item in CartStore(storage).items] == ["p1"]


def test_stored_items_are_product_plus_quantity(cart, storage):
    cart.add_to_cart(NOTEBOOK)

    [stored] = json.loads(storage.get_item(CART_STORAGE_KEY))["state"]["cart"]
    assert stored == {
        "_id": "p1",
        "name": "Premium Notebook",
        "description": "",
        "price": 24.99,
        "image": "",
        "category": "Notebooks",
        "quantity": 1,
    }
