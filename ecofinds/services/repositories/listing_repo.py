"""Listing Repository - Marketplace listings."""

from ecofinds.services.models import Listing

from .base import BaseRepository

# Listing columns plus the seller's name from profiles
LISTING_WITH_SELLER = "*, profiles:user_id (first_name, last_name)"


class ListingRepository(BaseRepository):
    """Listing database operations."""

    async def get_active(self, exclude_user_id: str | None = None) -> list[Listing]:
        """Active listings for the shop, newest first.

        Args:
            exclude_user_id: Viewer's own id; their listings are not offered back to them
        """
        # Status is matched case-insensitively: listings are created as "active"
        # but older rows were written as "Active"
        query = self.client.table("listings").select(LISTING_WITH_SELLER).ilike("status", "active")
        if exclude_user_id:
            query = query.neq("user_id", exclude_user_id)
        result = await query.order("created_at", desc=True).execute()
        return [Listing(**row) for row in result.data]

    async def get_by_user(self, user_id: str) -> list[Listing]:
        """All listings owned by a user, newest first."""
        result = (
            await self.client.table("listings")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Listing(**row) for row in result.data]

    async def get_by_id(self, listing_id: str) -> Listing | None:
        """Get a listing with its seller."""
        result = (
            await self.client.table("listings")
            .select(LISTING_WITH_SELLER)
            .eq("id", listing_id)
            .execute()
        )
        return Listing(**result.data[0]) if result.data else None

    async def delete(self, listing_id: str) -> None:
        """Delete a listing."""
        await self.client.table("listings").delete().eq("id", listing_id).execute()
