"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock, AsyncMock

# Set test environment variables before ecofinds.config is imported
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("SHIPPING_FEE", "15.00")

from ecofinds.cart import CartStore, InMemoryCartStorage  # noqa: E402


@pytest.fixture
def mock_supabase_client():
    """Mock async Supabase client; set table_mock.execute.return_value.data per test"""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.neq.return_value = table_mock
    table_mock.ilike.return_value = table_mock
    table_mock.order.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=Mock(data=[]))

    client.table.return_value = table_mock
    return client


@pytest.fixture
def mock_redis():
    """Mock async Upstash Redis client"""
    redis = Mock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def mug():
    """Sample catalog record"""
    return {
        "id": "p1",
        "name": "Mug",
        "price": "12.50",
        "image": "https://cdn.test/mug.jpg",
        "seller": "Alice",
    }


@pytest.fixture
def bag():
    """Second sample catalog record"""
    return {
        "id": "p2",
        "name": "Tote Bag",
        "price": "8.00",
        "image": None,
        "seller": "Bob",
    }


@pytest.fixture
def memory_storage():
    return InMemoryCartStorage()


@pytest.fixture
def store():
    """Cart store without persistence"""
    return CartStore("session-123")


@pytest.fixture
def listing_rows():
    """Listing rows as returned by Supabase"""
    return [
        {
            "id": "l1",
            "name": "Eco Mug",
            "price": 12.5,
            "description": "Bamboo fibre mug",
            "category": "Kitchen",
            "status": "Active",
            "views": 10,
            "image_url": "https://cdn.test/l1.jpg",
            "user_id": "seller-1",
            "created_at": "2025-01-02T10:00:00Z",
            "profiles": {"first_name": "Alice", "last_name": "Green"},
        },
        {
            "id": "l2",
            "name": "Bag",
            "price": 30,
            "description": None,
            "category": "Bags",
            "status": "Sold",
            "views": 25,
            "image_url": None,
            "user_id": "seller-2",
            "created_at": "2025-01-03T10:00:00Z",
            "profiles": None,
        },
    ]
