"""Purchase Repository - Buyer purchase history."""

from ecofinds.services.models import Purchase

from .base import BaseRepository

PURCHASE_WITH_DETAILS = (
    "*, listings:listing_id (id, name, category, image_url), "
    "profiles:seller_id (first_name, last_name)"
)


class PurchaseRepository(BaseRepository):
    """Purchase history operations."""

    async def get_by_buyer(self, buyer_id: str) -> list[Purchase]:
        """Purchases made by a buyer, newest first."""
        result = (
            await self.client.table("purchases")
            .select(PURCHASE_WITH_DETAILS)
            .eq("buyer_id", buyer_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Purchase(**row) for row in result.data]
