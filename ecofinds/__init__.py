"""
EcoFinds Core Module

This package contains the marketplace client core:
- cart: cart store, line items, persistence adapters, order summary
- db: database clients (Supabase + Redis)
- services: money helpers, listing models, repositories, catalog filtering

Note: Imports are lazy so that pure modules (cart, catalog filters)
can be used without configuring remote clients.
"""

__all__ = [
    "get_supabase",
    "get_redis",
    "open_cart_store",
]


def __getattr__(name):
    """Lazy attribute access for clean module loading."""
    if name == "get_supabase":
        from ecofinds.db import get_supabase
        return get_supabase
    if name == "get_redis":
        from ecofinds.db import get_redis
        return get_redis
    if name == "open_cart_store":
        from ecofinds.cart import open_cart_store
        return open_cart_store
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
