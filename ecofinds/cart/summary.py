"""Order summary derived from the current cart.

Nothing here is stored: every figure is recomputed from the cart each
time a summary is built, and the result is a frozen value handed to the
checkout collaborator.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ecofinds import config
from ecofinds.services.money import add, format_money, round_money, to_decimal
from .models import CartLineItem
from .service import CartStore


@dataclass(frozen=True)
class OrderSummary:
    """Subtotal, flat shipping fee and total for one cart at one moment."""
    items: tuple[CartLineItem, ...]
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    total_items: int
    currency: str = config.DEFAULT_CURRENCY

    @property
    def line_count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> dict:
        """Checkout payload: amounts rounded to cents as strings, plus display strings."""
        return {
            "items": [item.to_dict() for item in self.items],
            "line_count": self.line_count,
            "total_items": self.total_items,
            "subtotal": str(round_money(self.subtotal)),
            "shipping": str(round_money(self.shipping)),
            "total": str(round_money(self.total)),
            "currency": self.currency,
            "display": {
                "subtotal": format_money(self.subtotal, self.currency),
                "shipping": format_money(self.shipping, self.currency),
                "total": format_money(self.total, self.currency),
            },
        }


def build_order_summary(
    store: CartStore,
    shipping_fee: Optional[Decimal] = None,
    currency: Optional[str] = None,
) -> OrderSummary:
    """
    Compute the order summary for the store's current cart.

    Args:
        store: Cart store to read from
        shipping_fee: Flat per-order fee (defaults to SHIPPING_FEE)
        currency: Currency code for display (defaults to CURRENCY)
    """
    shipping = config.SHIPPING_FEE if shipping_fee is None else to_decimal(shipping_fee)
    subtotal = store.get_subtotal()
    return OrderSummary(
        items=store.get_items(),
        subtotal=subtotal,
        shipping=shipping,
        total=add(subtotal, shipping),
        total_items=store.get_total_items(),
        currency=currency or config.CURRENCY,
    )
