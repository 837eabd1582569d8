import json

import mongomock
import pytest
from pymongo.errors import ServerSelectionTimeoutError

from pricing import cart_subtotal
from storefront import (
    NOTIFICATION_TTL,
    CheckoutForm,
    StoreState,
    StorefrontClient,
    StorefrontError,
    add_to_cart,
    checkout_defaults,
    checkout_error,
    clear_cart,
    current_notification,
    dump_cart,
    merge_products,
    notify,
    rehydrate,
    update_cart_quantity,
)
from seed_data import ADMIN_EMAIL, ADMIN_PASSWORD
from schemas import Settings

SUIT = {"id": "101", "name": "Gulmohar Lawn Suit", "price": 3500, "images": ["a.jpg", "b.jpg"]}
SILK = {"id": "102", "name": "Shalimar Silk Ensemble", "price": 6200, "images": []}

FORM = CheckoutForm(name="Ayesha", phone="01700000000", address="House 4, Road 2", city="Dhaka")


def test_same_product_and_size_merge():
    state = StoreState()
    for qty in (1, 2, 3):
        state = add_to_cart(state, SUIT, qty, "M")
    assert len(state.cart) == 1
    assert state.cart[0].quantity == 6
    assert state.cart[0].image == "a.jpg"


def test_sizes_are_separate_lines():
    state = add_to_cart(StoreState(), SUIT, 1, "M")
    state = add_to_cart(state, SUIT, 1, "L")
    assert [(i.product_id, i.size) for i in state.cart] == [("101", "M"), ("101", "L")]


def test_cart_total_matches_recomputation():
    state = StoreState()
    state = add_to_cart(state, SUIT, 2, "M")
    assert state.cart_total == cart_subtotal(state.cart) == 7000
    state = add_to_cart(state, SILK, 1, "38")
    assert state.cart_total == cart_subtotal(state.cart) == 13200
    state = update_cart_quantity(state, "101", "M", 5)
    assert state.cart_total == cart_subtotal(state.cart) == 23700
    state = update_cart_quantity(state, "102", "38", 0)
    assert state.cart_total == cart_subtotal(state.cart) == 17500
    assert clear_cart(state).cart_total == 0


def test_reducers_do_not_mutate():
    before = add_to_cart(StoreState(), SUIT, 1, "M")
    after = update_cart_quantity(before, "101", "M", 4)
    assert before.cart[0].quantity == 1
    assert after.cart[0].quantity == 4


def test_snapshot_ignores_later_price_changes():
    product = dict(SUIT)
    state = add_to_cart(StoreState(), product, 1, "M")
    product["price"] = 9999
    assert state.cart[0].price == 3500


def test_missing_size_is_refused():
    state = add_to_cart(StoreState(), SUIT, 1, "")
    assert state.cart == []
    assert state.notification.type == "error"


def test_notification_expires():
    state = notify(StoreState(), "Saved", now=100.0)
    assert current_notification(state, now=100.0 + NOTIFICATION_TTL - 0.1).message == "Saved"
    assert current_notification(state, now=100.0 + NOTIFICATION_TTL) is None


def test_error_notification_kind():
    state = notify(StoreState(), "Nope", kind="error", now=0.0)
    assert state.notification.type == "error"



def test_only_cart_is_persisted():
    state = add_to_cart(StoreState(orders=[{"id": "x"}]), SUIT, 2, "M")
    data = json.loads(dump_cart(state))
    assert list(data) == ["cart"]
    assert data["cart"][0]["quantity"] == 2


def test_rehydrate_drops_bad_entries():
    raw = json.dumps({"cart": [
        {"product_id": "101", "name": "Suit", "price": 3500, "quantity": 2, "image": None, "size": "M"},
        {"product_id": "102", "name": "Silk", "price": "6200", "quantity": 1, "image": None, "size": "M"},
        {"product_id": "103", "name": "Velvet", "price": 9500, "size": "M"},
        None,
        "junk",
    ]})
    state = rehydrate(StoreState(), raw)
    assert [i.product_id for i in state.cart] == ["101"]
    assert state.cart_total == 7000


@pytest.mark.parametrize("raw", [None, "", "{not json", "[]", json.dumps({"cart": "nope"})])
def test_rehydrate_tolerates_corrupt_storage(raw):
    assert rehydrate(StoreState(), raw).cart == []


def test_merge_products_prefers_incoming():
    merged = merge_products([{"id": "1", "v": 1}, {"id": "2", "v": 1}], [{"id": "2", "v": 2}, {"id": "3", "v": 2}])
    assert {p["id"]: p["v"] for p in merged} == {"1": 1, "2": 2, "3": 2}


def test_checkout_defaults():
    settings = Settings(cod_enabled=False, shipping_options=[{"id": "dhaka", "label": "Inside Dhaka", "charge": 100}])
    form = checkout_defaults(settings, FORM)
    assert form.payment_method == "Online"
    assert form.shipping_option_id == "dhaka"


def test_checkout_blocked_without_shipping_options():
    cart = add_to_cart(StoreState(), SUIT, 1, "M").cart
    assert checkout_error(checkout_defaults(Settings(), FORM), Settings(), cart) == "Checkout is currently unavailable."


def test_checkout_blocked_on_empty_cart():
    settings = Settings(shipping_options=[{"id": "dhaka", "label": "Inside Dhaka", "charge": 100}])
    assert checkout_error(checkout_defaults(settings, FORM), settings, []) is not None


@pytest.fixture
def shop(client, with_shipping, tmp_path):
    sf = StorefrontClient(client, cart_path=tmp_path / "cart.json")
    sf.load_initial_data()
    return sf


def test_initial_load(shop):
    assert shop.state.loading is False
    assert shop.state.products
    assert [o.id for o in shop.state.settings.shipping_options] == ["dhaka", "outside"]
    assert shop.state.orders == []


def test_cart_survives_reload(client, shop, tmp_path):
    shop.add_to_cart(SUIT, 2, "M")
    reloaded = StorefrontClient(client, cart_path=tmp_path / "cart.json")
    assert reloaded.state.cart == shop.state.cart
    assert reloaded.state.cart_total == 7000
    assert reloaded.state.products == []


def test_place_cod_order(shop, tmp_path):
    shop.add_to_cart(SUIT, 2, "M")
    order = shop.place_order(FORM)
    assert order["total"] == 7100
    assert order["payment_method"] == "COD"
    assert order["status"] == "Pending"
    assert shop.state.cart == []
    assert json.loads((tmp_path / "cart.json").read_text())["cart"] == []
    assert shop.get_order(order["order_id"])["id"] == order["id"]


def test_place_online_order_waives_shipping(shop):
    shop.add_to_cart(SUIT, 2, "M")
    form = FORM.model_copy(update={
        "payment_method": "Online",
        "payment_number": "01711111111",
        "online_payment_method": "Bkash",
        "transaction_id": "TX42",
    })
    order = shop.place_order(form)
    assert order["total"] == 7000
    assert order["payment_method"] == "Online"
    assert order["payment_details"]["amount"] == 7000


def test_failed_order_keeps_cart(shop):
    shop.add_to_cart(SUIT, 2, "M")
    with pytest.raises(StorefrontError):
        shop.place_order(FORM.model_copy(update={"address": ""}))
    assert len(shop.state.cart) == 1
    assert shop.state.notification.type == "error"


def test_server_rejection_keeps_cart(shop, client, admin_headers):
    shop.add_to_cart(SUIT, 1, "M")
    # settings change after the client loaded them
    client.put("/settings", headers=admin_headers, json={"cod_enabled": False})
    with pytest.raises(StorefrontError):
        shop.place_order(FORM)
    assert len(shop.state.cart) == 1


def test_stale_shipping_option_falls_back(shop):
    shop.add_to_cart(SUIT, 2, "M")
    order = shop.place_order(FORM.model_copy(update={"shipping_option_id": "removed-option"}))
    assert order["shipping_option_id"] == "dhaka"
    assert order["total"] == 7100
    assert shop.state.cart == []


def test_store_outage_keeps_cart(shop, monkeypatch):
    shop.add_to_cart(SUIT, 2, "M")

    def unreachable(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")

    monkeypatch.setattr(mongomock.Collection, "insert_one", unreachable)
    with pytest.raises(StorefrontError, match="Service Unavailable"):
        shop.place_order(FORM)
    assert len(shop.state.cart) == 1
    assert shop.state.notification.type == "error"


def test_admin_session_and_logout(client, with_shipping, make_order):
    client.post("/orders", json=make_order())
    sf = StorefrontClient(client)
    assert sf.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    sf.load_initial_data()
    assert len(sf.state.orders) == 1

    order = sf.state.orders[0]
    sf.update_order_status(order["id"], "Confirmed")
    assert sf.state.orders[0]["status"] == "Confirmed"

    sf.load_admin_products(page=1, search="silk")
    assert sf.state.admin_pagination.total == len(sf.state.admin_products) == 1

    sf.logout()
    assert sf.state.orders == []
    assert sf.state.contact_messages == []
    assert sf.state.is_admin_authenticated is False


def test_admin_delete_order(client, make_order):
    client.post("/orders", json=make_order())
    sf = StorefrontClient(client)
    sf.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    sf.load_initial_data()
    sf.delete_order(sf.state.orders[0]["id"])
    assert sf.state.orders == []


def test_bad_login(client):
    sf = StorefrontClient(client)
    assert sf.login(ADMIN_EMAIL, "wrong") is False
    assert sf.state.is_admin_authenticated is False
    assert sf.state.notification.message == "Incorrect email or password."
