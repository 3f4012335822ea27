"""Persistence adapters for the cart.

A storage backend only moves opaque JSON strings per session; encoding
and decoding live in ``serialize_cart`` / ``deserialize_cart``.
"""
import json
from typing import Optional, Protocol

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from ecofinds import config
from ecofinds.db import RedisKeys, TTL, get_redis
from ecofinds.errors import CartPersistenceError, ERROR_CORRUPT_CART, ERROR_STORAGE_UNAVAILABLE
from ecofinds.logging import get_logger, sanitize_id_for_logging
from .models import Cart

logger = get_logger(__name__)


class CartStorage(Protocol):
    """Durable per-session store for serialized carts."""

    async def load(self, session_id: str) -> Optional[str]: ...

    async def save(self, session_id: str, payload: str) -> None: ...

    async def delete(self, session_id: str) -> None: ...


def serialize_cart(cart: Cart) -> str:
    """Encode a cart as JSON."""
    return json.dumps(cart.to_dict())


def deserialize_cart(payload: str | bytes) -> Cart:
    """Decode a cart previously produced by serialize_cart.

    Raises:
        CartPersistenceError: payload is not a valid cart record
    """
    try:
        data = json.loads(payload)
        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            raise TypeError("cart record must be an object with an items list")
        return Cart.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        # CartValidationError is a ValueError, so invariant violations land here too
        raise CartPersistenceError(f"{ERROR_CORRUPT_CART}: {e}") from e


class InMemoryCartStorage:
    """Dict-backed storage for tests and offline sessions."""

    def __init__(self):
        self.records: dict[str, str] = {}

    async def load(self, session_id: str) -> Optional[str]:
        return self.records.get(session_id)

    async def save(self, session_id: str, payload: str) -> None:
        self.records[session_id] = payload

    async def delete(self, session_id: str) -> None:
        self.records.pop(session_id, None)


class RedisCartStorage:
    """
    Stores carts in Upstash Redis.

    Features:
    - One key per session (cart:{session_id}) with a sliding TTL
    - Writes retried with exponential backoff before being reported
    - All client errors surface as CartPersistenceError
    """

    def __init__(self, redis=None, ttl: int | None = None, retries: int | None = None):
        self._redis = redis  # Lazy initialization
        self.ttl = ttl
        self.retries = retries if retries is not None else config.CART_WRITE_RETRIES

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e
        return self._redis

    def _key(self, session_id: str) -> str:
        return RedisKeys.cart_key(session_id)

    def _ttl(self) -> int:
        if self.ttl is not None:
            return self.ttl
        return TTL.CART

    async def load(self, session_id: str) -> Optional[str]:
        try:
            return await self.redis.get(self._key(session_id))
        except CartPersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to load cart {sanitize_id_for_logging(session_id)}: {e}")
            raise CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", session_id) from e

    async def save(self, session_id: str, payload: str) -> None:
        key = self._key(session_id)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                reraise=True,
            ):
                with attempt:
                    await self.redis.set(key, payload, ex=self._ttl())
        except CartPersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to save cart {sanitize_id_for_logging(session_id)}: {e}")
            raise CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", session_id) from e

    async def delete(self, session_id: str) -> None:
        try:
            await self.redis.delete(self._key(session_id))
        except CartPersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to delete cart {sanitize_id_for_logging(session_id)}: {e}")
            raise CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", session_id) from e
