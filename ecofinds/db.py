"""
Database Module - Supabase and Redis Clients

Provides lazy singleton instances of:
- Async Supabase client for listings, purchases and profiles
- Async Upstash Redis client for cart persistence
"""

from typing import Optional

from supabase import AsyncClient, acreate_client
from upstash_redis.asyncio import Redis as AsyncRedis

from ecofinds import config


_async_supabase_client: Optional[AsyncClient] = None
_redis_client: Optional[AsyncRedis] = None


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).

    Raises:
        ValueError: SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not set
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(
            config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY
        )

    return _async_supabase_client


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN

    Raises:
        ValueError: credentials are not set
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(
            url=config.UPSTASH_REDIS_REST_URL, token=config.UPSTASH_REDIS_REST_TOKEN
        )

    return _redis_client


class RedisKeys:
    """Redis key prefixes for different data types."""

    CART = "cart:"  # cart:{session_id}

    @staticmethod
    def cart_key(session_id: str) -> str:
        return f"{RedisKeys.CART}{session_id}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART = config.CART_TTL_SECONDS
