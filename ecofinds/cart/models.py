"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Union

from ecofinds.errors import (
    CartValidationError,
    ERROR_EMPTY_ID,
    ERROR_EMPTY_NAME,
    ERROR_INVALID_PRICE,
    ERROR_INVALID_QUANTITY,
    ERROR_NON_POSITIVE_QUANTITY,
)
from ecofinds.services.money import multiply, parse_decimal

PLACEHOLDER_IMAGE = "/placeholder.svg"
UNKNOWN_SELLER = "Unknown Seller"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_id(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CartValidationError(ERROR_EMPTY_ID, field="id")
    return value


def validate_price(value: Any) -> Decimal:
    price = parse_decimal(value)
    if price is None or price < 0:
        raise CartValidationError(ERROR_INVALID_PRICE, field="price")
    return price


def validate_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CartValidationError(ERROR_EMPTY_NAME, field="name")
    return value


def validate_quantity(value: Any) -> int:
    # bool is an int subclass but never a meaningful quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise CartValidationError(ERROR_INVALID_QUANTITY, field="quantity")
    return value


@dataclass
class ProductRecord:
    """Catalog record handed to the cart when a shopper adds a listing."""
    id: str
    name: str
    price: Decimal
    image: str = PLACEHOLDER_IMAGE
    seller: str = UNKNOWN_SELLER

    def __post_init__(self):
        self.id = validate_id(self.id)
        self.name = validate_name(self.name)
        self.price = validate_price(self.price)
        self.image = self.image or PLACEHOLDER_IMAGE
        self.seller = self.seller or UNKNOWN_SELLER

    @classmethod
    def coerce(cls, value: Union["ProductRecord", Mapping[str, Any]]) -> "ProductRecord":
        """Accept either a ProductRecord or a plain mapping with the same keys."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise CartValidationError(f"expected a product record, got {type(value).__name__}")
        return cls(
            id=value.get("id"),
            name=value.get("name"),
            price=value.get("price"),
            image=value.get("image"),
            seller=value.get("seller"),
        )


@dataclass
class CartLineItem:
    """Single product line in the cart.

    ``price`` is the unit price captured when the product was first added.
    """
    id: str
    name: str
    price: Decimal
    image: str = PLACEHOLDER_IMAGE
    seller: str = UNKNOWN_SELLER
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return multiply(self.price, self.quantity)

    @classmethod
    def from_product(cls, product: ProductRecord, quantity: int) -> "CartLineItem":
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            image=product.image,
            seller=product.seller,
            quantity=quantity,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary. Price is kept as a string to stay lossless."""
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "image": self.image,
            "seller": self.seller,
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        """Create from dictionary, rejecting records that break cart invariants."""
        quantity = validate_quantity(data["quantity"])
        if quantity < 1:
            raise CartValidationError(ERROR_NON_POSITIVE_QUANTITY, field="quantity")
        return cls(
            id=validate_id(data["id"]),
            name=validate_name(data["name"]),
            price=validate_price(data["price"]),
            image=data.get("image") or PLACEHOLDER_IMAGE,
            seller=data.get("seller") or UNKNOWN_SELLER,
            quantity=quantity,
        )


@dataclass
class Cart:
    """Ordered collection of line items for one shopping session."""
    session_id: str
    items: List[CartLineItem] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        now = _utcnow()
        if not self.created_at:
            self.created_at = now
        if not self.updated_at:
            self.updated_at = now

    def find(self, item_id: str) -> CartLineItem | None:
        return next((item for item in self.items if item.id == item_id), None)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    @property
    def total_items(self) -> int:
        """Total number of units in cart (not distinct lines)."""
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        """Sum of price x quantity over all lines, recomputed on every access."""
        return sum((item.line_total for item in self.items), Decimal("0"))

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "session_id": self.session_id,
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cart":
        """Create from dictionary.

        Duplicate ids in stored data are merged into the first line so the
        hydrated cart still holds one line per product.
        """
        cart = cls(
            session_id=data["session_id"],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )
        for raw in data.get("items", []):
            item = CartLineItem.from_dict(raw)
            existing = cart.find(item.id)
            if existing:
                existing.quantity += item.quantity
            else:
                cart.items.append(item)
        return cart
