"""
Order placement and lifecycle.

Orders carry two identifiers: the store's ``_id`` and a short numeric
``order_id`` shown to customers. The numeric id is drawn at random and the
unique index on ``order.order_id`` decides whether it is free; a duplicate key
on insert means a collision and a fresh number is drawn.
"""
import re
import random
import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import to_str_id
from schemas import Order, OrderCreate, Settings
from pricing import quote, select_shipping_option, available_payment_methods

logger = logging.getLogger(__name__)

ORDER_ID_MIN = 10000
ORDER_ID_MAX = 9999998
ORDER_ID_PATTERN = re.compile(r"^\d{5,7}$")

STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "Pending": frozenset({"Confirmed", "Cancelled"}),
    "Confirmed": frozenset({"Shipped", "Cancelled"}),
    "Shipped": frozenset({"Delivered", "Cancelled"}),
    "Delivered": frozenset(),
    "Cancelled": frozenset(),
}


class OrderError(Exception):
    status_code = 400


class EmptyCartError(OrderError):
    def __init__(self):
        super().__init__("Cart is empty")


class OrderValidationError(OrderError):
    pass


class OrderNotFound(OrderError):
    status_code = 404

    def __init__(self):
        super().__init__("Order not found")


class StatusTransitionError(OrderError):
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot change order status from {current} to {target}")
        self.current = current
        self.target = target


def generate_order_id(rng=random) -> str:
    return str(rng.randint(ORDER_ID_MIN, ORDER_ID_MAX))


def _internal_id(order_id: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(order_id):
        return None
    return ObjectId(order_id)


def check_order(payload: OrderCreate, settings: Settings) -> None:
    """Reject an order the storefront would not have allowed to be submitted."""
    if not payload.cart_items:
        raise EmptyCartError()

    if settings.show_city_field and not payload.customer_details.city.strip():
        raise OrderValidationError("City is required")

    method = payload.payment_info.payment_method
    if method not in available_payment_methods(settings):
        raise OrderValidationError(f"Payment method {method} is not available")

    if payload.shipping_option_id is not None:
        option = select_shipping_option(settings.shipping_options, payload.shipping_option_id)
        if option is None or option.id != payload.shipping_option_id:
            raise OrderValidationError("Unknown shipping option")
        expected = quote(payload.cart_items, option, method).total
        if payload.total != expected:
            raise OrderValidationError(f"Order total {payload.total} does not match {expected}")


def create_order(db, payload: OrderCreate, settings: Settings, rng=random) -> dict:
    check_order(payload, settings)

    customer = payload.customer_details
    now = datetime.now(timezone.utc)
    order = Order(
        order_id=generate_order_id(rng),
        customer_name=customer.name,
        phone=customer.phone,
        address=customer.address,
        city=customer.city,
        cart_items=payload.cart_items,
        total=payload.total,
        payment_method=payload.payment_info.payment_method,
        payment_details=payload.payment_info.payment_details,
        shipping_option_id=payload.shipping_option_id,
        date=now.date().isoformat(),
    )
    doc = order.model_dump()
    doc["created_at"] = now
    doc["updated_at"] = now

    while True:
        try:
            db["order"].insert_one(doc)
            break
        except DuplicateKeyError:
            logger.info("Order id %s already taken, drawing again", doc["order_id"])
            doc.pop("_id", None)
            doc["order_id"] = generate_order_id(rng)

    logger.info("Order %s created (%s, total %s)", doc["order_id"], doc["payment_method"], doc["total"])
    return to_str_id(doc)


def list_orders(db) -> List[dict]:
    return [to_str_id(o) for o in db["order"].find().sort("created_at", -1)]


def find_order(db, identifier: str) -> dict:
    """Look an order up by its numeric order id or by its internal id."""
    doc = None
    if ORDER_ID_PATTERN.match(identifier):
        doc = db["order"].find_one({"order_id": identifier})
    else:
        oid = _internal_id(identifier)
        if oid is not None:
            doc = db["order"].find_one({"_id": oid})
    if doc is None:
        raise OrderNotFound()
    return to_str_id(doc)


def can_transition(current: str, target: str) -> bool:
    return current == target or target in STATUS_TRANSITIONS.get(current, frozenset())


def update_order_status(db, order_id: str, status: str, strict: bool = False) -> dict:
    oid = _internal_id(order_id)
    if oid is None:
        raise OrderNotFound()

    if strict:
        current = db["order"].find_one({"_id": oid}, {"status": 1})
        if current is None:
            raise OrderNotFound()
        if not can_transition(current["status"], status):
            raise StatusTransitionError(current["status"], status)

    doc = db["order"].find_one_and_update(
        {"_id": oid},
        {"$set": {"status": status, "updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        raise OrderNotFound()
    return to_str_id(doc)


def delete_order(db, order_id: str) -> None:
    oid = _internal_id(order_id)
    if oid is None:
        raise OrderNotFound()
    result = db["order"].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise OrderNotFound()
