"""Cart package: models, storage, store and order summary."""
from .models import Cart, CartLineItem, ProductRecord, PLACEHOLDER_IMAGE, UNKNOWN_SELLER
from .service import CartStore, open_cart_store
from .storage import (
    CartStorage,
    InMemoryCartStorage,
    RedisCartStorage,
    deserialize_cart,
    serialize_cart,
)
from .summary import OrderSummary, build_order_summary

__all__ = [
    "Cart",
    "CartLineItem",
    "ProductRecord",
    "PLACEHOLDER_IMAGE",
    "UNKNOWN_SELLER",
    "CartStore",
    "open_cart_store",
    "CartStorage",
    "InMemoryCartStorage",
    "RedisCartStorage",
    "serialize_cart",
    "deserialize_cart",
    "OrderSummary",
    "build_order_summary",
]
