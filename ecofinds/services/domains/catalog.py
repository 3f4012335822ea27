"""
Catalog Domain Service

Search, category/status filtering and sorting of listing collections,
plus the fetch-then-filter flows behind the shop, "my listings" and
"my purchases" screens.

The filter functions are pure: same input, same output, no state kept
between calls, so they can be re-run on every keystroke or after every
realtime "data changed" event.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from ecofinds.logging import get_logger, sanitize_id_for_logging
from ecofinds.services.models import Listing, Purchase
from ecofinds.services.money import to_decimal

logger = get_logger(__name__)

T = TypeVar("T")

ALL = "all"


class SortKey(str, Enum):
    """Listing sort orders."""
    FEATURED = "featured"  # keep source order
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    VIEWS = "views"

    @classmethod
    def parse(cls, value: "SortKey | str | None") -> "SortKey":
        """Unknown or empty values fall back to FEATURED."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.FEATURED


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from a model or a plain mapping."""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _is_all(value: str | None) -> bool:
    return not value or value.lower() == ALL


def _contains(haystack: Any, needle: str) -> bool:
    return isinstance(haystack, str) and needle in haystack.lower()


def _timestamp(item: Any) -> float:
    value = _field(item, "created_at")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
    if not isinstance(value, datetime):
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _price(item: Any) -> Decimal:
    return to_decimal(_field(item, "price"))


def _views(item: Any) -> int:
    return _field(item, "views") or 0


def sort_items(items: Iterable[T], sort_key: SortKey | str | None = SortKey.FEATURED) -> list[T]:
    """Stable sort; equal keys keep their input order."""
    key = SortKey.parse(sort_key)
    items = list(items)
    if key is SortKey.NEWEST:
        return sorted(items, key=_timestamp, reverse=True)
    if key is SortKey.OLDEST:
        return sorted(items, key=_timestamp)
    if key is SortKey.PRICE_LOW:
        return sorted(items, key=_price)
    if key is SortKey.PRICE_HIGH:
        return sorted(items, key=_price, reverse=True)
    if key is SortKey.VIEWS:
        return sorted(items, key=_views, reverse=True)
    return items


def filter_listings(
    listings: Iterable[T],
    search_term: str = "",
    category: str = ALL,
    status: str = ALL,
    sort_key: SortKey | str | None = SortKey.FEATURED,
) -> list[T]:
    """
    Filter and sort listings.

    Args:
        listings: Listing models or mappings with name/description/category/status
        search_term: Case-insensitive substring of the name or description
        category: Exact category, or "all"
        status: Case-insensitive status, or "all"
        sort_key: One of SortKey

    Returns:
        New list; the input is not modified
    """
    needle = (search_term or "").lower()

    def matches(listing: Any) -> bool:
        if needle and not (
            _contains(_field(listing, "name"), needle)
            or _contains(_field(listing, "description"), needle)
        ):
            return False
        if not _is_all(category) and _field(listing, "category") != category:
            return False
        if not _is_all(status) and (_field(listing, "status") or "").lower() != status.lower():
            return False
        return True

    return sort_items((listing for listing in listings if matches(listing)), sort_key)


def filter_purchases(
    purchases: Iterable[T],
    search_term: str = "",
    category: str = ALL,
    status: str = ALL,
    sort_key: SortKey | str | None = SortKey.NEWEST,
) -> list[T]:
    """Filter and sort purchase history; search covers item name and seller name."""
    needle = (search_term or "").lower()
    if SortKey.parse(sort_key) is SortKey.VIEWS:
        sort_key = SortKey.FEATURED

    def matches(purchase: Any) -> bool:
        if needle and not (
            _contains(_field(purchase, "name"), needle)
            or _contains(_field(purchase, "seller_name"), needle)
        ):
            return False
        if not _is_all(category) and _field(purchase, "category") != category:
            return False
        if not _is_all(status) and (_field(purchase, "status") or "").lower() != status.lower():
            return False
        return True

    return sort_items((purchase for purchase in purchases if matches(purchase)), sort_key)


def available_categories(items: Iterable[Any]) -> list[str]:
    """["all"] followed by the distinct categories in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        category = _field(item, "category")
        if category:
            seen.setdefault(category, None)
    return [ALL, *seen]


class CatalogService:
    """
    Catalog domain service.

    Fetches listings and purchases through the repositories and applies
    the pure filters above. Callers re-run these methods whenever the
    backing store reports a change.
    """

    def __init__(self, listings, purchases):
        self.listings = listings
        self.purchases = purchases

    async def browse(
        self,
        viewer_id: str | None = None,
        search_term: str = "",
        category: str = ALL,
        sort_key: SortKey | str | None = SortKey.FEATURED,
    ) -> list[Listing]:
        """Shop view: other sellers' active listings."""
        listings = await self.listings.get_active(exclude_user_id=viewer_id)
        return filter_listings(listings, search_term, category, ALL, sort_key)

    async def my_listings(
        self,
        user_id: str,
        search_term: str = "",
        category: str = ALL,
        status: str = ALL,
        sort_key: SortKey | str | None = SortKey.NEWEST,
    ) -> list[Listing]:
        listings = await self.listings.get_by_user(user_id)
        return filter_listings(listings, search_term, category, status, sort_key)

    async def my_purchases(
        self,
        buyer_id: str,
        search_term: str = "",
        category: str = ALL,
        status: str = ALL,
        sort_key: SortKey | str | None = SortKey.NEWEST,
    ) -> list[Purchase]:
        purchases = await self.purchases.get_by_buyer(buyer_id)
        return filter_purchases(purchases, search_term, category, status, sort_key)

    async def delete_listing(self, listing_id: str, current: Sequence[Listing] = ()) -> list[Listing]:
        """Delete a listing and return ``current`` without it."""
        await self.listings.delete(listing_id)
        logger.info(f"Deleted listing {sanitize_id_for_logging(listing_id)}")
        return [listing for listing in current if listing.id != listing_id]
