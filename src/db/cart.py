# src/db/cart.py
"""
Cart engine and cart lifecycle.

Every operation here runs inside one Database.transaction(): it validates
first, then writes, and a failure at any point rolls the whole operation back,
so callers never see a half-applied change. Stock is always counted in pieces;
a carton line of quantity q holds q * pcs_per_carton pieces.
"""
from __future__ import annotations

import functools
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from db import crud, models
from db.database import Database
from db.errors import (
    AmbiguousCartItem,
    CartItemNotFound,
    CartNotFound,
    DataIntegrityError,
    EmptyCart,
    InsufficientStock,
    InvalidCartState,
    InvalidInput,
    PosError,
    ProductNotFound,
)
from utils.logger import get_logger
from utils.pure import format_money, to_cents

_logger = get_logger(__name__)

TAX_RATE = Decimal("0.0825")
PAYMENT_METHOD = "cash"


def _logged(fn):
    """Log rejected operations before handing the error back to the caller."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except DataIntegrityError:
            # already reported at CRITICAL where it was detected
            raise
        except PosError as e:
            _logger.warning(f"{fn.__name__} rejected: {e}")
            raise

    return wrapper


def compute_totals(
    items: Iterable[models.CartItemDetail],
) -> Tuple[Decimal, Decimal, Decimal]:
    """(subtotal, tax, total), each rounded half-up to cents."""
    subtotal = to_cents(sum((d.line_total for d in items), Decimal("0")))
    tax = to_cents(subtotal * TAX_RATE)
    total = to_cents(subtotal + tax)
    return subtotal, tax, total


def _check_quantity(quantity, minimum: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput(f"Quantity must be a whole number, got {quantity!r}.")
    if quantity < minimum:
        raise InvalidInput(f"Quantity must be at least {minimum}, got {quantity}.")


async def _active_cart(db: Database, cart_id: int) -> models.Cart:
    cart = await crud.get_cart(db, cart_id)
    if cart is None:
        raise CartNotFound(cart_id)
    if not cart.is_active:
        raise InvalidCartState(cart_id, cart.status)
    return cart


async def _matching_line(
    db: Database, cart_id: int, product_id: int, is_carton: Optional[bool]
) -> models.CartItem:
    lines = await crud.find_cart_items(db, cart_id, product_id, is_carton)
    if not lines:
        raise CartItemNotFound(cart_id, product_id)
    if len(lines) > 1:
        raise AmbiguousCartItem(cart_id, product_id)
    return lines[0]


async def _product_of_line(db: Database, line: models.CartItem) -> models.Product:
    product = await crud.get_product(db, line.product_id)
    if product is None:
        _logger.critical(
            f"Cart item {line.id} of cart {line.cart_id} references missing "
            f"product {line.product_id}."
        )
        raise DataIntegrityError(
            f"Product {line.product_id} referenced by cart {line.cart_id} not found."
        )
    return product


async def _take(db: Database, product: models.Product, pieces: int) -> None:
    # guarded decrement, the stock check above is not trusted on its own
    if not await crud.consume_stock(db, product.id, pieces):
        current = await crud.get_product(db, product.id)
        raise InsufficientStock(product.id, pieces, current.stock if current else 0)


async def _cart_view(db: Database, cart_id: int) -> models.CartView:
    view = await crud.get_cart_view(db, cart_id)
    if view is None:
        raise CartNotFound(cart_id)
    return view


# ---------------------------
# Cart engine
# ---------------------------


@_logged
async def add_item(
    db: Database,
    cart_id: int,
    product_id: int,
    quantity: int,
    is_carton: bool = False,
) -> models.CartView:
    """
    Add quantity of a product to the cart, per piece or per carton.

    Adding the same product in the same unit again merges into the existing
    line. A new line freezes the current piece or carton price. The pieces
    taken are deducted from stock. Returns the refreshed cart view.
    """
    _check_quantity(quantity, 1)
    is_carton = bool(is_carton)

    async with db.transaction():
        await _active_cart(db, cart_id)
        product = await crud.get_product(db, product_id)
        if product is None:
            raise ProductNotFound(product_id)

        pieces = product.pieces(quantity, is_carton)
        if product.stock < pieces:
            raise InsufficientStock(product.id, pieces, product.stock)

        existing = await crud.find_cart_items(db, cart_id, product_id, is_carton)
        if existing:
            line = existing[0]
            new_quantity = line.quantity + quantity
            delta = product.pieces(new_quantity, is_carton) - product.pieces(
                line.quantity, is_carton
            )
            if product.stock < delta:
                raise InsufficientStock(product.id, delta, product.stock)
            await _take(db, product, delta)
            await crud.set_cart_item_quantity(db, line.id, new_quantity)
        else:
            await _take(db, product, pieces)
            await crud.insert_cart_item(
                db,
                cart_id,
                product_id,
                quantity,
                product.unit_price(is_carton),
                is_carton,
            )

        view = await _cart_view(db, cart_id)

    _logger.info(
        f"Cart {cart_id}: added {quantity} {'carton' if is_carton else 'pc'} "
        f"of product {product_id} ({pieces} pcs)."
    )
    return view


@_logged
async def update_item_quantity(
    db: Database,
    cart_id: int,
    product_id: int,
    quantity: int,
    is_carton: Optional[bool] = None,
) -> models.CartView:
    """
    Set a line's quantity in its own unit; 0 removes the line.
    Stock moves by the difference in pieces. is_carton picks the line when the
    product is in the cart both per piece and per carton.
    """
    _check_quantity(quantity, 0)

    async with db.transaction():
        await _active_cart(db, cart_id)
        line = await _matching_line(db, cart_id, product_id, is_carton)
        product = await _product_of_line(db, line)

        diff = product.pieces(quantity, line.is_carton) - product.pieces(
            line.quantity, line.is_carton
        )
        if diff > 0 and product.stock < diff:
            raise InsufficientStock(product.id, diff, product.stock)

        if quantity == 0:
            await crud.delete_cart_item(db, line.id)
        else:
            await crud.set_cart_item_quantity(db, line.id, quantity)

        if diff > 0:
            await _take(db, product, diff)
        elif diff < 0:
            await crud.adjust_stock(db, product.id, -diff)

        view = await _cart_view(db, cart_id)

    _logger.info(
        f"Cart {cart_id}: product {product_id} quantity {line.quantity} -> {quantity}."
    )
    return view


@_logged
async def remove_item(
    db: Database,
    cart_id: int,
    product_id: int,
    is_carton: Optional[bool] = None,
) -> models.CartView:
    """Delete a line and return its pieces to stock."""
    async with db.transaction():
        await _active_cart(db, cart_id)
        line = await _matching_line(db, cart_id, product_id, is_carton)
        product = await _product_of_line(db, line)

        await crud.delete_cart_item(db, line.id)
        await crud.adjust_stock(db, product.id, product.pieces(line.quantity, line.is_carton))

        view = await _cart_view(db, cart_id)

    _logger.info(f"Cart {cart_id}: removed product {product_id}.")
    return view


# ---------------------------
# Cart lifecycle
# ---------------------------


@_logged
async def confirm_cart(
    db: Database, cart_id: int, when: Optional[datetime] = None
) -> Tuple[models.Order, models.CartView]:
    """
    Close the cart as a sale: create its Order and mark it confirmed.
    Stock was consumed when items were added and stays consumed.
    """
    async with db.transaction():
        view = await _cart_view(db, cart_id)
        if not view.cart.is_active:
            raise InvalidCartState(cart_id, view.status)
        if not view.items:
            raise EmptyCart(cart_id)

        subtotal, tax, total = compute_totals(view.items)
        order = await crud.create_order(
            db, cart_id, subtotal, tax, total, when, PAYMENT_METHOD
        )
        await crud.set_cart_status(db, cart_id, models.CONFIRMED, when)
        view = await _cart_view(db, cart_id)

    _logger.info(
        f"Cart {cart_id} confirmed as order {order.order_number}, "
        f"total {format_money(order.total)}."
    )
    return order, view


@_logged
async def reject_cart(
    db: Database, cart_id: int, when: Optional[datetime] = None
) -> models.CartView:
    """Return every line's pieces to stock, empty the cart, mark it rejected."""
    async with db.transaction():
        view = await _cart_view(db, cart_id)
        if not view.cart.is_active:
            raise InvalidCartState(cart_id, view.status)

        for detail in view.items:
            await crud.adjust_stock(db, detail.product.id, detail.pieces)
            await crud.delete_cart_item(db, detail.item.id)

        await crud.set_cart_status(db, cart_id, models.REJECTED, when)
        view = await _cart_view(db, cart_id)

    _logger.info(f"Cart {cart_id} rejected.")
    return view
