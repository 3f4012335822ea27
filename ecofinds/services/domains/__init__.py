"""Domain services wrapping repositories."""
from .catalog import (
    CatalogService,
    SortKey,
    available_categories,
    filter_listings,
    filter_purchases,
    sort_items,
)

__all__ = [
    "CatalogService",
    "SortKey",
    "available_categories",
    "filter_listings",
    "filter_purchases",
    "sort_items",
]
