"""
Tests for cart persistence: background writes, hydration, storage adapters
"""

import asyncio
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from ecofinds.cart import (
    Cart,
    CartLineItem,
    CartStore,
    InMemoryCartStorage,
    RedisCartStorage,
    deserialize_cart,
    open_cart_store,
    serialize_cart,
)
from ecofinds.errors import CartPersistenceError


class RecordingStorage(InMemoryCartStorage):
    """In-memory storage that counts writes"""

    def __init__(self):
        super().__init__()
        self.saves = []

    async def save(self, session_id, payload):
        self.saves.append(payload)
        await super().save(session_id, payload)


class FailingStorage(InMemoryCartStorage):
    """Storage whose writes fail until `healthy` is set"""

    def __init__(self, error=None):
        super().__init__()
        self.healthy = False
        self.error = error or CartPersistenceError("storage down")

    async def save(self, session_id, payload):
        if not self.healthy:
            raise self.error
        await super().save(session_id, payload)


class TestBackgroundWrites:
    """Tests for write scheduling."""

    @pytest.mark.asyncio
    async def test_mutation_is_persisted(self, memory_storage, mug):
        """Test a mutation reaches storage after flush."""
        store = CartStore("s1", storage=memory_storage)

        store.add_item(mug, 2)
        await store.flush()

        cart = deserialize_cart(memory_storage.records["s1"])
        assert cart.items[0].id == "p1"
        assert cart.items[0].quantity == 2

    @pytest.mark.asyncio
    async def test_mutation_does_not_wait_for_write(self, mug):
        """Test add_item returns before a slow write completes."""
        release = asyncio.Event()

        class SlowStorage(InMemoryCartStorage):
            async def save(self, session_id, payload):
                await release.wait()
                await super().save(session_id, payload)

        storage = SlowStorage()
        store = CartStore("s1", storage=storage)

        store.add_item(mug)
        await asyncio.sleep(0)

        assert store.get_total_items() == 1
        assert storage.records == {}

        release.set()
        await store.flush()
        assert "s1" in storage.records

    @pytest.mark.asyncio
    async def test_burst_of_mutations_coalesces(self, mug, bag):
        """Test back-to-back mutations are written once with the final state."""
        storage = RecordingStorage()
        store = CartStore("s1", storage=storage)

        store.add_item(mug)
        store.add_item(mug)
        store.add_item(bag)
        store.set_quantity("p2", 4)
        await store.flush()

        assert len(storage.saves) == 1
        cart = deserialize_cart(storage.saves[-1])
        assert [(item.id, item.quantity) for item in cart.items] == [("p1", 2), ("p2", 4)]

    @pytest.mark.asyncio
    async def test_last_state_wins(self, mug):
        """Test the stored record matches the latest in-memory state."""
        storage = RecordingStorage()
        store = CartStore("s1", storage=storage)

        store.add_item(mug)
        await asyncio.sleep(0)
        store.set_quantity("p1", 7)
        store.remove_item("p1")
        await store.flush()

        assert deserialize_cart(storage.records["s1"]).items == []

    def test_without_event_loop_write_waits_for_flush(self, memory_storage, mug):
        """Test sync callers defer the write until flush()."""
        store = CartStore("s1", storage=memory_storage)

        store.add_item(mug)
        assert memory_storage.records == {}

        asyncio.run(store.flush())
        assert deserialize_cart(memory_storage.records["s1"]).total_items == 1

    @pytest.mark.asyncio
    async def test_store_without_storage_flushes_cleanly(self, store, mug):
        """Test flush on an in-memory-only store is a no-op."""
        store.add_item(mug)

        await store.flush()

        assert store.get_total_items() == 1


class TestPersistenceFailures:
    """Tests for storage outages."""

    @pytest.mark.asyncio
    async def test_failure_keeps_in_memory_state(self, mug):
        """Test a failing write never undoes the mutation."""
        handler = Mock()
        store = CartStore("s1", storage=FailingStorage(), on_persistence_error=handler)

        store.add_item(mug, 3)
        await store.flush()

        assert store.get_total_items() == 3
        assert store.persistence_degraded is True
        handler.assert_called_once()
        assert isinstance(handler.call_args.args[0], CartPersistenceError)

    @pytest.mark.asyncio
    async def test_unexpected_storage_error_is_wrapped(self, mug):
        """Test non-cart exceptions from storage are reported as persistence errors."""
        handler = Mock()
        storage = FailingStorage(error=ConnectionError("reset"))
        store = CartStore("s1", storage=storage, on_persistence_error=handler)

        store.add_item(mug)
        await store.flush()

        assert isinstance(handler.call_args.args[0], CartPersistenceError)

    @pytest.mark.asyncio
    async def test_recovers_on_next_successful_write(self, mug):
        """Test the degraded flag clears once storage is back."""
        storage = FailingStorage()
        store = CartStore("s1", storage=storage)
        store.add_item(mug)
        await store.flush()
        assert store.persistence_degraded

        storage.healthy = True
        store.add_item(mug)
        await store.flush()

        assert store.persistence_degraded is False
        assert deserialize_cart(storage.records["s1"]).total_items == 2

    @pytest.mark.asyncio
    async def test_failing_handler_is_contained(self, mug):
        """Test a raising error handler does not escape."""
        store = CartStore(
            "s1", storage=FailingStorage(), on_persistence_error=Mock(side_effect=RuntimeError)
        )

        store.add_item(mug)
        await store.flush()

        assert store.get_total_items() == 1


class TestHydration:
    """Tests for startup hydration."""

    @pytest.mark.asyncio
    async def test_hydrate_restores_previous_session(self, memory_storage, mug, bag):
        """Test a new store picks up what the previous one saved."""
        first = CartStore("s1", storage=memory_storage)
        first.add_item(bag, 2)
        first.add_item(mug)
        await first.close()

        second = await open_cart_store("s1", storage=memory_storage)

        assert [(item.id, item.quantity) for item in second.get_items()] == [("p2", 2), ("p1", 1)]
        assert second.get_subtotal() == Decimal("28.50")

    @pytest.mark.asyncio
    async def test_hydrate_notifies_listeners(self, memory_storage, mug):
        """Test listeners registered before hydration see the loaded cart."""
        seeded = CartStore("s1", storage=memory_storage)
        seeded.add_item(mug)
        await seeded.flush()

        store = CartStore("s1", storage=memory_storage)
        listener = Mock()
        store.subscribe(listener)

        assert await store.hydrate() is True
        listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_record_gives_empty_cart(self, memory_storage):
        """Test no prior cart means an empty store."""
        store = await open_cart_store("new-session", storage=memory_storage)

        assert store.is_empty
        assert store.persistence_degraded is False

    @pytest.mark.asyncio
    async def test_corrupt_record_is_discarded(self, memory_storage):
        """Test corrupt data starts an empty cart and is deleted."""
        memory_storage.records["s1"] = "{not json"

        store = await open_cart_store("s1", storage=memory_storage)

        assert store.is_empty
        assert "s1" not in memory_storage.records

    @pytest.mark.asyncio
    async def test_unreadable_storage_gives_empty_cart(self):
        """Test a failing load does not fail startup."""
        storage = InMemoryCartStorage()
        storage.load = AsyncMock(side_effect=CartPersistenceError("down"))
        handler = Mock()

        store = await open_cart_store("s1", storage=storage, on_persistence_error=handler)

        assert store.is_empty
        assert store.persistence_degraded is True
        handler.assert_called_once()

    @pytest.mark.asyncio
    async def test_hydrate_runs_once(self, memory_storage, mug):
        """Test a second hydrate call is ignored."""
        store = CartStore("s1", storage=memory_storage)
        assert await store.hydrate() is False

        memory_storage.records["s1"] = serialize_cart(
            Cart(session_id="s1", items=[CartLineItem(id="p1", name="Mug", price=Decimal("12.50"))])
        )

        assert await store.hydrate() is False
        assert store.is_empty

    @pytest.mark.asyncio
    async def test_changes_before_hydration_win(self, memory_storage, mug, bag):
        """Test in-memory changes are kept over an older persisted cart."""
        old = CartStore("s1", storage=memory_storage)
        old.add_item(bag)
        await old.flush()

        store = CartStore("s1", storage=memory_storage)
        store.add_item(mug)
        assert await store.hydrate() is False
        await store.flush()

        assert [item.id for item in store.get_items()] == ["p1"]
        assert [item.id for item in deserialize_cart(memory_storage.records["s1"]).items] == ["p1"]

    @pytest.mark.asyncio
    async def test_clear_before_hydration_wins(self, memory_storage, mug):
        """Test a cart emptied before hydration stays empty in memory and storage."""
        old = CartStore("s1", storage=memory_storage)
        old.add_item(mug, 2)
        await old.flush()

        store = CartStore("s1", storage=memory_storage)
        store.add_item(mug)
        store.clear()
        assert await store.hydrate() is False
        await store.flush()

        assert store.get_items() == ()
        assert deserialize_cart(memory_storage.records["s1"]).items == []

    @pytest.mark.asyncio
    async def test_close_detaches_listeners(self, mug):
        """Test listeners are dropped at session end."""
        store = CartStore("s1")
        listener = Mock()
        store.subscribe(listener)

        await store.close()
        store.add_item(mug)

        listener.assert_not_called()


class TestRedisCartStorage:
    """Tests for the Upstash Redis adapter."""

    @pytest.mark.asyncio
    async def test_save_uses_session_key_and_ttl(self, mock_redis):
        """Test writes go to cart:{session_id} with expiry."""
        storage = RedisCartStorage(redis=mock_redis, ttl=3600, retries=1)

        await storage.save("s1", "{}")

        mock_redis.set.assert_awaited_once_with("cart:s1", "{}", ex=3600)

    @pytest.mark.asyncio
    async def test_load_and_delete(self, mock_redis):
        """Test reads and deletes use the same key."""
        mock_redis.get = AsyncMock(return_value='{"session_id": "s1"}')
        storage = RedisCartStorage(redis=mock_redis, retries=1)

        assert await storage.load("s1") == '{"session_id": "s1"}'
        await storage.delete("s1")

        mock_redis.get.assert_awaited_once_with("cart:s1")
        mock_redis.delete.assert_awaited_once_with("cart:s1")

    @pytest.mark.asyncio
    async def test_save_failure_raises_persistence_error(self, mock_redis):
        """Test client errors surface as CartPersistenceError."""
        mock_redis.set = AsyncMock(side_effect=ConnectionError("timeout"))
        storage = RedisCartStorage(redis=mock_redis, retries=1)

        with pytest.raises(CartPersistenceError) as exc_info:
            await storage.save("s1", "{}")

        assert exc_info.value.session_id == "s1"

    @pytest.mark.asyncio
    async def test_save_retries_transient_failure(self, mock_redis):
        """Test a write succeeds after one transient failure."""
        mock_redis.set = AsyncMock(side_effect=[ConnectionError("blip"), True])
        storage = RedisCartStorage(redis=mock_redis, retries=2)

        await storage.save("s1", "{}")

        assert mock_redis.set.await_count == 2

    @pytest.mark.asyncio
    async def test_load_failure_raises_persistence_error(self, mock_redis):
        """Test read errors surface as CartPersistenceError."""
        mock_redis.get = AsyncMock(side_effect=ConnectionError("timeout"))
        storage = RedisCartStorage(redis=mock_redis, retries=1)

        with pytest.raises(CartPersistenceError):
            await storage.load("s1")

    @pytest.mark.asyncio
    async def test_store_round_trip_through_redis(self, mock_redis, mug):
        """Test a store persists through Redis and hydrates back."""
        written = {}

        async def fake_set(key, value, ex=None):
            written[key] = value
            return True

        async def fake_get(key):
            return written.get(key)

        mock_redis.set = AsyncMock(side_effect=fake_set)
        mock_redis.get = AsyncMock(side_effect=fake_get)
        storage = RedisCartStorage(redis=mock_redis, retries=1)

        first = await open_cart_store("s1", storage=storage)
        first.add_item(mug, 2)
        await first.close()
        second = await open_cart_store("s1", storage=storage)

        assert second.get_items() == first.get_items()
