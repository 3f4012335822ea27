"""Base repository with shared Supabase client."""

from supabase import AsyncClient


class BaseRepository:
    """Base class for all repositories.

    All methods await the async client.
    """

    def __init__(self, client: AsyncClient) -> None:
        self.client = client
