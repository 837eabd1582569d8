"""
Client-side store

Mirrors the storefront's server state for a shopping client. State lives in an
immutable-by-convention ``StoreState``; the reducer functions below return a
new state instead of mutating. Only the cart is persisted, through the
explicit ``dump_cart`` / ``rehydrate`` boundary. Everything else is a cache
refetched by ``StorefrontClient``.
"""
import json
import time
import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from schemas import CartItem, Settings, PaymentDetails
from pricing import (
    Quote,
    cart_subtotal,
    quote,
    select_shipping_option,
    available_payment_methods,
    default_payment_method,
)

logger = logging.getLogger(__name__)

NOTIFICATION_TTL = 3.0
CHOOSE_METHOD = "Choose"


class StorefrontError(Exception):
    pass


class Notification(BaseModel):
    message: str
    type: Literal["success", "error"] = "success"
    expires_at: float


class AdminPagination(BaseModel):
    page: int = 1
    pages: int = 1
    total: int = 0


class StoreState(BaseModel):
    cart: List[CartItem] = Field(default_factory=list)
    cart_total: int = 0
    products: List[Dict[str, Any]] = Field(default_factory=list)
    full_products_loaded: bool = False
    orders: List[Dict[str, Any]] = Field(default_factory=list)
    contact_messages: List[Dict[str, Any]] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    admin_products: List[Dict[str, Any]] = Field(default_factory=list)
    admin_pagination: AdminPagination = Field(default_factory=AdminPagination)
    is_admin_authenticated: bool = False
    notification: Optional[Notification] = None
    loading: bool = True


# Reducers

def _with_cart(state: StoreState, cart: List[CartItem]) -> StoreState:
    return state.model_copy(update={"cart": cart, "cart_total": cart_subtotal(cart)})


def notify(state: StoreState, message: str, kind: Literal["success", "error"] = "success",
           now: Optional[float] = None) -> StoreState:
    now = time.monotonic() if now is None else now
    note = Notification(message=message, type=kind, expires_at=now + NOTIFICATION_TTL)
    return state.model_copy(update={"notification": note})


def current_notification(state: StoreState, now: Optional[float] = None) -> Optional[Notification]:
    note = state.notification
    if note is None:
        return None
    now = time.monotonic() if now is None else now
    return note if now < note.expires_at else None


def add_to_cart(state: StoreState, product: Dict[str, Any], quantity: int, size: str) -> StoreState:
    """Add ``quantity`` of ``product`` in ``size``; same product and size merge."""
    if not size:
        return notify(state, "Please select a size.", "error")
    if quantity < 1:
        return notify(state, "Quantity must be at least 1.", "error")

    cart = []
    found = False
    for item in state.cart:
        if item.product_id == product["id"] and item.size == size:
            item = item.model_copy(update={"quantity": item.quantity + quantity})
            found = True
        cart.append(item)

    if found:
        message = f"Quantity updated for {product['name']} (Size: {size})!"
    else:
        images = product.get("images") or []
        cart.append(CartItem(
            product_id=product["id"],
            name=product["name"],
            price=product["price"],
            quantity=quantity,
            image=images[0] if images else None,
            size=size,
        ))
        message = f"{product['name']} (Size: {size}) added to cart!"
    return notify(_with_cart(state, cart), message)


def update_cart_quantity(state: StoreState, product_id: str, size: str, quantity: int) -> StoreState:
    if not any(i.product_id == product_id and i.size == size for i in state.cart):
        return state
    if quantity <= 0:
        cart = [i for i in state.cart if not (i.product_id == product_id and i.size == size)]
    else:
        cart = [
            i.model_copy(update={"quantity": quantity}) if i.product_id == product_id and i.size == size else i
            for i in state.cart
        ]
    return _with_cart(state, cart)


def clear_cart(state: StoreState) -> StoreState:
    return _with_cart(state, [])


def merge_products(existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # incoming wins; products only in existing are kept
    merged = {p["id"]: p for p in existing}
    merged.update({p["id"]: p for p in incoming})
    return list(merged.values())


def purge_admin_data(state: StoreState) -> StoreState:
    return state.model_copy(update={
        "is_admin_authenticated": False,
        "orders": [],
        "contact_messages": [],
        "admin_products": [],
        "admin_pagination": AdminPagination(),
    })


# Persistence boundary

def dump_cart(state: StoreState) -> str:
    return json.dumps({"cart": [item.model_dump() for item in state.cart]})


def load_cart(raw: Optional[str]) -> List[CartItem]:
    """Parse a persisted cart, dropping any entry that does not validate."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unreadable persisted cart")
        return []
    if not isinstance(data, dict) or not isinstance(data.get("cart"), list):
        return []

    cart = []
    for entry in data["cart"]:
        try:
            cart.append(CartItem.model_validate(entry, strict=True))
        except ValidationError:
            logger.warning("Dropping invalid cart entry: %r", entry)
    return cart


def rehydrate(state: StoreState, raw: Optional[str]) -> StoreState:
    return _with_cart(state, load_cart(raw))


def save_cart_file(state: StoreState, path) -> None:
    Path(path).write_text(dump_cart(state), encoding="utf-8")


def load_cart_file(state: StoreState, path) -> StoreState:
    p = Path(path)
    if not p.exists():
        return rehydrate(state, None)
    return rehydrate(state, p.read_text(encoding="utf-8"))


# Checkout

class CustomerForm(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""


class CheckoutForm(CustomerForm):
    payment_method: Optional[Literal["COD", "Online"]] = None
    shipping_option_id: Optional[str] = None
    payment_number: str = ""
    online_payment_method: str = CHOOSE_METHOD
    transaction_id: str = ""


def checkout_defaults(settings: Settings, form: Optional[CheckoutForm] = None) -> CheckoutForm:
    """Fill in a valid payment method and the first shipping option."""
    form = form or CheckoutForm()
    updates = {}
    if form.payment_method not in available_payment_methods(settings):
        updates["payment_method"] = default_payment_method(settings)
    if not form.shipping_option_id and settings.shipping_options:
        updates["shipping_option_id"] = settings.shipping_options[0].id
    return form.model_copy(update=updates) if updates else form


def checkout_quote(form: CheckoutForm, settings: Settings, cart: List[CartItem]) -> Quote:
    option = select_shipping_option(settings.shipping_options, form.shipping_option_id)
    return quote(cart, option, form.payment_method)


def checkout_error(form: CheckoutForm, settings: Settings, cart: List[CartItem]) -> Optional[str]:
    if not cart:
        return "Your cart is empty. Cannot place an order."
    if not available_payment_methods(settings) or not settings.shipping_options:
        return "Checkout is currently unavailable."
    if form.payment_method not in available_payment_methods(settings):
        return "Please choose a payment method."
    required = [form.name, form.phone, form.address]
    if settings.show_city_field:
        required.append(form.city)
    if any(not value.strip() for value in required) or not form.shipping_option_id:
        return "Please fill in all required fields."
    if form.payment_method == "Online":
        if not form.payment_number.strip() or form.online_payment_method == CHOOSE_METHOD or not form.transaction_id.strip():
            return "Please fill in all required fields."
    return None


class StorefrontClient:
    """Talks to the storefront API and keeps ``state`` in sync with it."""

    def __init__(self, http: httpx.Client, cart_path=None, token: Optional[str] = None):
        self.http = http
        self.cart_path = cart_path
        self.token = token
        self.state = StoreState(is_admin_authenticated=bool(token))
        if cart_path:
            self.state = load_cart_file(self.state, cart_path)

    # helpers

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _request(self, method: str, url: str, failure: str, **kwargs) -> Any:
        try:
            res = self.http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            self.state = notify(self.state, failure, "error")
            raise StorefrontError(failure) from e
        if res.is_error:
            try:
                detail = res.json().get("detail")
            except ValueError:
                detail = None
            message = detail if isinstance(detail, str) else failure
            self.state = notify(self.state, message, "error")
            raise StorefrontError(message)
        return res.json()

    def _persist(self) -> None:
        if self.cart_path:
            save_cart_file(self.state, self.cart_path)

    # cart

    def add_to_cart(self, product: Dict[str, Any], quantity: int = 1, size: str = "") -> None:
        self.state = add_to_cart(self.state, product, quantity, size)
        self._persist()

    def update_cart_quantity(self, product_id: str, size: str, quantity: int) -> None:
        self.state = update_cart_quantity(self.state, product_id, size, quantity)
        self._persist()

    def clear_cart(self) -> None:
        self.state = clear_cart(self.state)
        self._persist()

    # loading

    def load_initial_data(self) -> None:
        self.state = self.state.model_copy(update={"loading": True})
        try:
            home = self._request("GET", "/page-data/home", "Could not connect to the server.")
            self.state = self.state.model_copy(update={
                "products": home["products"],
                "settings": Settings.model_validate(home["settings"]),
                "full_products_loaded": False,
            })
            if self.state.is_admin_authenticated:
                orders = self._request("GET", "/orders", "Could not connect to the server.")
                messages = self._request("GET", "/messages", "Could not connect to the server.")
                self.state = self.state.model_copy(update={"orders": orders, "contact_messages": messages})
        except StorefrontError:
            pass
        finally:
            self.state = self.state.model_copy(update={"loading": False})

    def ensure_all_products_loaded(self) -> None:
        if self.state.full_products_loaded:
            return
        products = self._request("GET", "/products", "Could not load all products.")
        self.state = self.state.model_copy(update={
            "products": merge_products(self.state.products, products),
            "full_products_loaded": True,
        })

    def load_admin_products(self, page: int = 1, search: str = "") -> None:
        if not self.token:
            return
        data = self._request("GET", "/products/admin", "Could not load products for admin panel.",
                             params={"page": page, "search": search})
        self.state = self.state.model_copy(update={
            "admin_products": data["products"],
            "admin_pagination": AdminPagination(page=data["page"], pages=data["pages"], total=data["total"]),
        })

    # auth

    def login(self, email: str, password: str) -> bool:
        try:
            data = self._request("POST", "/auth/login", "Incorrect email or password.",
                                 json={"email": email, "password": password})
        except StorefrontError:
            self.state = notify(self.state, "Incorrect email or password.", "error")
            return False
        self.token = data["token"]
        self.state = notify(self.state.model_copy(update={"is_admin_authenticated": True}), "Login successful!")
        return True

    def logout(self) -> None:
        self.token = None
        self.state = notify(purge_admin_data(self.state), "You have been logged out.")

    # products

    def add_product(self, product: Dict[str, Any]) -> Dict[str, Any]:
        created = self._request("POST", "/products", "Could not add product.", json=product)
        self.state = notify(self.state.model_copy(update={"products": [created] + self.state.products}),
                            "Product added successfully!")
        return created

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        saved = self._request("PUT", f"/products/{product_id}", "Could not update product.", json=changes)
        products = [saved if p["id"] == saved["id"] else p for p in self.state.products]
        self.state = notify(self.state.model_copy(update={"products": products}), "Product updated successfully!")
        return saved

    def delete_product(self, product_id: str) -> None:
        self._request("DELETE", f"/products/{product_id}", "Could not delete product.")
        products = [p for p in self.state.products if p["id"] != product_id]
        self.state = notify(self.state.model_copy(update={"products": products}), "Product deleted successfully.")

    # orders

    def place_order(self, form: CheckoutForm) -> Dict[str, Any]:
        """Submit the cart. The cart is only cleared once the server accepts it."""
        settings = self.state.settings
        form = checkout_defaults(settings, form)
        error = checkout_error(form, settings, self.state.cart)
        if error:
            self.state = notify(self.state, error, "error")
            raise StorefrontError(error)

        # a stale option id falls back to the first option; send the one actually priced
        option = select_shipping_option(settings.shipping_options, form.shipping_option_id)
        form = form.model_copy(update={"shipping_option_id": option.id})
        priced = checkout_quote(form, settings, self.state.cart)
        payment_info: Dict[str, Any] = {"payment_method": form.payment_method}
        if form.payment_method == "Online":
            payment_info["payment_details"] = PaymentDetails(
                payment_number=form.payment_number,
                method=form.online_payment_method,
                amount=priced.total,
                transaction_id=form.transaction_id,
            ).model_dump()

        body = {
            "customer_details": form.model_dump(include={"name", "phone", "address", "city"}),
            "cart_items": [item.model_dump() for item in self.state.cart],
            "total": priced.total,
            "payment_info": payment_info,
            "shipping_option_id": form.shipping_option_id,
        }
        order = self._request("POST", "/orders", "Failed to place order. Please check your details.", json=body)

        if self.state.is_admin_authenticated:
            self.state = self.state.model_copy(update={"orders": [order] + self.state.orders})
        self.clear_cart()
        return order

    def update_order_status(self, order_id: str, status: str) -> Dict[str, Any]:
        updated = self._request("PUT", f"/orders/{order_id}/status", "Could not update order status.",
                                json={"status": status})
        orders = [updated if o["id"] == updated["id"] else o for o in self.state.orders]
        self.state = notify(self.state.model_copy(update={"orders": orders}),
                            f"Order {order_id} status updated to {status}.")
        return updated

    def delete_order(self, order_id: str) -> None:
        self._request("DELETE", f"/orders/{order_id}", "Could not delete order.")
        orders = [o for o in self.state.orders if o["id"] != order_id]
        self.state = notify(self.state.model_copy(update={"orders": orders}), f"Order {order_id} has been deleted.")

    def get_order(self, identifier: str) -> Dict[str, Any]:
        return self._request("GET", f"/orders/{identifier}", "Order not found")

    # contact messages

    def send_contact_message(self, name: str, email: str, message: str) -> None:
        self._request("POST", "/messages", "Could not send your message.",
                      json={"name": name, "email": email, "message": message})

    def mark_message_as_read(self, message_id: str, is_read: bool) -> None:
        updated = self._request("PUT", f"/messages/{message_id}/read", "Could not update message.",
                                json={"is_read": is_read})
        messages = [updated if m["id"] == updated["id"] else m for m in self.state.contact_messages]
        self.state = notify(self.state.model_copy(update={"contact_messages": messages}),
                            f"Message marked as {'read' if is_read else 'unread'}.")

    def delete_contact_message(self, message_id: str) -> None:
        self._request("DELETE", f"/messages/{message_id}", "Could not delete message.")
        messages = [m for m in self.state.contact_messages if m["id"] != message_id]
        self.state = notify(self.state.model_copy(update={"contact_messages": messages}),
                            "Message has been deleted.")

    # settings

    def update_settings(self, changes: Dict[str, Any]) -> None:
        data = self._request("PUT", "/settings", "Failed to update settings.", json=changes)
        self.state = notify(self.state.model_copy(update={"settings": Settings.model_validate(data)}),
                            "Settings updated successfully!")
