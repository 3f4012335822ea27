"""
Runtime configuration read from the environment.

Remote client credentials live here together with the cart tunables so
the rest of the package never touches os.environ directly.
"""

import os
from decimal import Decimal

from ecofinds.services.money import parse_decimal

# Supabase (relational store for listings and purchases)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

# Upstash Redis (cart persistence) - standard env var names per Upstash docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

DEFAULT_SHIPPING_FEE = Decimal("15.00")
DEFAULT_CURRENCY = "USD"


def _shipping_fee_from_env() -> Decimal:
    fee = parse_decimal(os.environ.get("SHIPPING_FEE"))
    if fee is None or fee < 0:
        return DEFAULT_SHIPPING_FEE
    return fee


def _int_from_env(name: str, default: int, minimum: int = 1) -> int:
    try:
        value = int(os.environ.get(name, default))
    except ValueError:
        return default
    return max(value, minimum)


# Flat per-order shipping fee added on top of the cart subtotal
SHIPPING_FEE = _shipping_fee_from_env()

CURRENCY = os.environ.get("CURRENCY", DEFAULT_CURRENCY).upper()

# Attempts for a single cart write before it is reported as failed
CART_WRITE_RETRIES = _int_from_env("CART_WRITE_RETRIES", 3)

# Persisted carts expire after this many seconds without a write
CART_TTL_SECONDS = _int_from_env("CART_TTL_SECONDS", 7 * 86400)
