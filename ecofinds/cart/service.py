"""Cart store: the in-process owner of one session's cart."""
import asyncio
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union

from ecofinds.errors import (
    CartPersistenceError,
    CartValidationError,
    ERROR_NON_POSITIVE_QUANTITY,
    ERROR_STORAGE_UNAVAILABLE,
)
from ecofinds.logging import get_logger, sanitize_id_for_logging
from .models import Cart, CartLineItem, ProductRecord, validate_id, validate_quantity
from .storage import CartStorage, RedisCartStorage, deserialize_cart, serialize_cart

logger = get_logger(__name__)

Listener = Callable[[], None]
PersistenceErrorHandler = Callable[[CartPersistenceError], None]


class CartStore:
    """
    Holds the authoritative cart for one session.

    Features:
    - Synchronous add/remove/set-quantity/clear; duplicate adds merge into one line
    - Totals derived from the line items on every read
    - Zero-argument listeners notified after every committed change
    - Background write of the latest snapshot after each change (see flush())

    Views get copies from get_items() and change the cart only through
    the mutating methods.
    """

    def __init__(
        self,
        session_id: str,
        storage: Optional[CartStorage] = None,
        on_persistence_error: Optional[PersistenceErrorHandler] = None,
    ):
        self.session_id = validate_id(session_id)
        self._storage = storage
        self._on_persistence_error = on_persistence_error
        self._cart = Cart(session_id=session_id)
        self._listeners: list[Listener] = []
        self._dirty = False
        self._drain_task: Optional[asyncio.Task] = None
        self._hydrated = False
        self._mutated = False
        self.persistence_degraded = False

    # -- reads -------------------------------------------------------------

    def get_items(self) -> tuple[CartLineItem, ...]:
        """Snapshot of the line items in insertion order."""
        return tuple(replace(item) for item in self._cart.items)

    def get_item(self, item_id: str) -> Optional[CartLineItem]:
        item = self._cart.find(item_id)
        return replace(item) if item else None

    def get_total_items(self) -> int:
        """Sum of quantities, not the number of distinct lines."""
        return self._cart.total_items

    def get_subtotal(self) -> Decimal:
        return self._cart.subtotal

    @property
    def line_count(self) -> int:
        return len(self._cart.items)

    @property
    def is_empty(self) -> bool:
        return not self._cart.items

    # -- mutations ---------------------------------------------------------

    def add_item(
        self,
        product: Union[ProductRecord, Mapping[str, Any]],
        quantity: int = 1,
    ) -> None:
        """Add a product, or increase its quantity if it is already in the cart.

        The name, price, image and seller captured on the first add are kept.

        Raises:
            CartValidationError: malformed product or non-positive quantity
        """
        record = ProductRecord.coerce(product)
        quantity = validate_quantity(quantity)
        if quantity < 1:
            raise CartValidationError(ERROR_NON_POSITIVE_QUANTITY, field="quantity")

        existing = self._cart.find(record.id)
        if existing:
            existing.quantity += quantity
        else:
            self._cart.items.append(CartLineItem.from_product(record, quantity))

        self._commit()

    def remove_item(self, item_id: str) -> None:
        """Remove a line. Unknown ids are ignored.

        Raises:
            CartValidationError: empty or non-string id
        """
        validate_id(item_id)
        remaining = [item for item in self._cart.items if item.id != item_id]
        if len(remaining) == len(self._cart.items):
            return
        self._cart.items = remaining
        self._commit()

    def set_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity, clamped to at least 1. Unknown ids are ignored.

        Raises:
            CartValidationError: empty or non-string id, or quantity is not an integer
        """
        validate_id(item_id)
        quantity = max(validate_quantity(quantity), 1)
        item = self._cart.find(item_id)
        if item is None or item.quantity == quantity:
            return
        item.quantity = quantity
        self._commit()

    def clear(self) -> None:
        """Empty the cart (e.g. after the checkout collaborator confirms payment)."""
        self._cart.items = []
        self._commit()

    # -- listeners ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception(
                    f"Cart listener failed for session {sanitize_id_for_logging(self.session_id)}"
                )

    def _commit(self) -> None:
        self._mutated = True
        self._cart.touch()
        self._schedule_write()
        self._notify()

    # -- persistence -------------------------------------------------------

    def _schedule_write(self) -> None:
        if self._storage is None:
            return
        self._dirty = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller): the write happens on the next flush()
            return
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        """Write the latest snapshot until no change is left unwritten."""
        while self._dirty:
            self._dirty = False
            await self._write(serialize_cart(self._cart))

    async def _write(self, payload: str) -> None:
        try:
            await self._storage.save(self.session_id, payload)
        except CartPersistenceError as e:
            self._report(e)
        except Exception as e:
            self._report(CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", self.session_id))
        else:
            if self.persistence_degraded:
                logger.info(
                    f"Cart persistence recovered for session {sanitize_id_for_logging(self.session_id)}"
                )
            self.persistence_degraded = False

    def _report(self, error: CartPersistenceError) -> None:
        self.persistence_degraded = True
        logger.warning(
            f"Cart for session {sanitize_id_for_logging(self.session_id)} "
            f"is running in memory only: {error}"
        )
        if self._on_persistence_error is not None:
            try:
                self._on_persistence_error(error)
            except Exception:
                logger.exception("Persistence error handler failed")

    async def flush(self) -> None:
        """Wait until every change so far has been written (or reported as failed).

        Call before a navigation or session boundary.
        """
        if self._storage is None:
            return
        while True:
            task = self._drain_task
            if task is not None and not task.done():
                await task
                continue
            if not self._dirty:
                return
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def hydrate(self) -> bool:
        """Load the persisted cart once at startup.

        A missing, corrupt or unreadable record leaves the cart empty.
        Changes made before hydration win over the persisted record.

        Returns:
            True if persisted items were loaded
        """
        if self._storage is None or self._hydrated:
            return False
        self._hydrated = True

        try:
            payload = await self._storage.load(self.session_id)
        except CartPersistenceError as e:
            self._report(e)
            return False
        except Exception as e:
            self._report(CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", self.session_id))
            return False

        if not payload:
            return False

        # Any committed mutation, even one that left the cart empty, is newer
        # than the persisted record; its pending write replaces that record
        if self._mutated:
            logger.info(
                f"Cart for session {sanitize_id_for_logging(self.session_id)} changed before "
                "hydration, keeping in-memory state"
            )
            return False

        try:
            cart = deserialize_cart(payload)
        except CartPersistenceError as e:
            logger.warning(
                f"Corrupted cart data for session {sanitize_id_for_logging(self.session_id)}: {e}"
            )
            await self._discard_corrupt_record()
            return False

        cart.session_id = self.session_id
        self._cart = cart
        self._notify()
        return True

    async def _discard_corrupt_record(self) -> None:
        try:
            await self._storage.delete(self.session_id)
        except CartPersistenceError as e:
            self._report(e)
        except Exception as e:
            self._report(CartPersistenceError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}", self.session_id))

    async def close(self) -> None:
        """Flush pending writes and drop all listeners at session end."""
        await self.flush()
        self._listeners.clear()


async def open_cart_store(
    session_id: str,
    storage: Optional[CartStorage] = None,
    on_persistence_error: Optional[PersistenceErrorHandler] = None,
) -> CartStore:
    """
    Create and hydrate the cart store for a session.

    Meant to be called once by the application bootstrap, which then hands
    the store to every view that needs it.
    """
    if storage is None:
        storage = RedisCartStorage()
    store = CartStore(session_id, storage=storage, on_persistence_error=on_persistence_error)
    await store.hydrate()
    return store
