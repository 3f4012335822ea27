"""
Repository Pattern for Database Operations

- ListingRepository: shop catalog, a seller's own listings, deletion
- PurchaseRepository: buyer purchase history
"""
from .listing_repo import ListingRepository
from .purchase_repo import PurchaseRepository

__all__ = [
    "ListingRepository",
    "PurchaseRepository",
]
