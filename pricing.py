"""
Cart pricing

Pure functions computing what a customer pays for a cart. Shared by the
checkout flow in storefront.py and the order endpoint, which re-quotes a
submitted total when the shipping option is known.
"""
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from schemas import CartItem, ShippingOption, Settings


class Quote(BaseModel):
    subtotal: int
    shipping_charge: int
    effective_shipping_charge: int
    total: int


def cart_subtotal(items: Iterable[CartItem]) -> int:
    return sum(item.price * item.quantity for item in items)


def select_shipping_option(options: Sequence[ShippingOption], option_id: Optional[str] = None) -> Optional[ShippingOption]:
    """Return the option with ``option_id``, else the first one, else None."""
    if not options:
        return None
    for option in options:
        if option.id == option_id:
            return option
    return options[0]


def effective_shipping_charge(charge: int, payment_method: Optional[str]) -> int:
    # Online-paid orders are not charged shipping
    if payment_method == "Online":
        return 0
    return charge


def quote(items: Iterable[CartItem], option: Optional[ShippingOption], payment_method: Optional[str]) -> Quote:
    subtotal = cart_subtotal(items)
    charge = option.charge if option else 0
    effective = effective_shipping_charge(charge, payment_method)
    return Quote(
        subtotal=subtotal,
        shipping_charge=charge,
        effective_shipping_charge=effective,
        total=subtotal + effective,
    )


def available_payment_methods(settings: Settings) -> List[str]:
    methods = []
    if settings.cod_enabled:
        methods.append("COD")
    if settings.online_payment_enabled:
        methods.append("Online")
    return methods


def default_payment_method(settings: Settings) -> Optional[str]:
    methods = available_payment_methods(settings)
    return methods[0] if methods else None
