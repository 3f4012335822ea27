"""
Cart errors and common error messages.

Messages are centralized to avoid string duplication across modules.
"""

# Validation messages
ERROR_EMPTY_ID = "id must be a non-empty string"
ERROR_EMPTY_NAME = "name must be a non-empty string"
ERROR_INVALID_PRICE = "price must be a non-negative number"
ERROR_INVALID_QUANTITY = "quantity must be an integer"
ERROR_NON_POSITIVE_QUANTITY = "quantity must be a positive integer"

# Persistence messages
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable"
ERROR_CORRUPT_CART = "Stored cart data is corrupt"


class CartError(Exception):
    """Base class for cart errors."""


class CartValidationError(CartError, ValueError):
    """Caller passed a malformed id, price or quantity to a mutating operation."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class CartPersistenceError(CartError):
    """Writing or reading the persisted cart failed.

    Never raised out of a cart mutation; reported to observers instead.
    """

    def __init__(self, message: str, session_id: str | None = None):
        super().__init__(message)
        self.session_id = session_id
