"""Database Models - Pydantic models for marketplace rows."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ecofinds.cart.models import PLACEHOLDER_IMAGE, UNKNOWN_SELLER, ProductRecord
from ecofinds.services.money import to_decimal as _to_decimal


class SellerProfile(BaseModel):
    """Seller profile joined onto listings and purchases."""
    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or UNKNOWN_SELLER


def _seller_name(profile: Optional[SellerProfile]) -> str:
    return profile.display_name if profile else UNKNOWN_SELLER


class Listing(BaseModel):
    """Listing row, optionally joined with its seller's profile."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    price: Decimal
    original_price: Optional[Decimal] = None
    description: Optional[str] = None
    category: str = ""
    condition: Optional[str] = None
    status: str = "active"
    views: int = 0
    image_url: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime
    profiles: Optional[SellerProfile] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)

    @field_validator("original_price", mode="before")
    @classmethod
    def convert_original_price(cls, v):
        return None if v is None else _to_decimal(v)

    @field_validator("views", mode="before")
    @classmethod
    def default_views(cls, v):
        return v or 0

    @property
    def seller_name(self) -> str:
        return _seller_name(self.profiles)

    def to_product_record(self) -> ProductRecord:
        """Record handed to CartStore.add_item when the shopper adds this listing."""
        return ProductRecord(
            id=self.id,
            name=self.name,
            price=self.price,
            image=self.image_url or PLACEHOLDER_IMAGE,
            seller=self.seller_name,
        )


class PurchasedListing(BaseModel):
    """Listing columns joined onto a purchase."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    category: str = ""
    image_url: Optional[str] = None


class Purchase(BaseModel):
    """Purchase history row for a buyer."""
    model_config = ConfigDict(extra="ignore")

    id: str
    order_id: Optional[str] = None
    price: Decimal
    status: str
    tracking_number: Optional[str] = None
    has_review: bool = False
    created_at: datetime
    listings: PurchasedListing
    profiles: Optional[SellerProfile] = None

    @field_validator("price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        return _to_decimal(v)

    @property
    def name(self) -> str:
        return self.listings.name

    @property
    def category(self) -> str:
        return self.listings.category

    @property
    def seller_name(self) -> str:
        return _seller_name(self.profiles)
