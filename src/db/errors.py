# error taxonomy shared by crud, cart and the screens
from typing import Optional


class PosError(Exception):
    """Base class for every failure the POS core reports to its callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------
# Not found (404)
# ---------------------------


class NotFoundError(PosError):
    status_code = 404
    entity = "Record"

    def __init__(self, key, message: Optional[str] = None) -> None:
        super().__init__(message or f"{self.entity} {key} not found.")
        self.key = key


class ProductNotFound(NotFoundError):
    entity = "Product"


class CartNotFound(NotFoundError):
    entity = "Cart"


class CartItemNotFound(NotFoundError):
    entity = "Cart item"

    def __init__(self, cart_id: int, product_id: int) -> None:
        super().__init__(
            (cart_id, product_id),
            f"Product {product_id} is not in cart {cart_id}.",
        )
        self.cart_id = cart_id
        self.product_id = product_id


class OrderNotFound(NotFoundError):
    entity = "Order"


class TransactionNotFound(NotFoundError):
    entity = "Transaction"


# ---------------------------
# Validation (400)
# ---------------------------


class PosValidationError(PosError):
    status_code = 400


class InsufficientStock(PosValidationError):
    def __init__(self, product_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"{requested} pcs requested, {available} available."
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class EmptyCart(PosValidationError):
    def __init__(self, cart_id: int) -> None:
        super().__init__(f"Cart {cart_id} is empty.")
        self.cart_id = cart_id


class InvalidInput(PosValidationError, ValueError):
    pass


class InvalidCartState(PosValidationError):
    def __init__(self, cart_id: int, status: str) -> None:
        super().__init__(f"Cart {cart_id} is {status} and can no longer change.")
        self.cart_id = cart_id
        self.status = status


class AmbiguousCartItem(PosValidationError):
    def __init__(self, cart_id: int, product_id: int) -> None:
        super().__init__(
            f"Cart {cart_id} holds product {product_id} both per piece and per "
            "carton; specify which line to change."
        )
        self.cart_id = cart_id
        self.product_id = product_id


# ---------------------------
# Internal faults (500)
# ---------------------------


class DataIntegrityError(PosError):
    """A stored row references something that no longer exists."""
