import asyncio
import os
import sys
import unittest
from datetime import datetime
from decimal import Decimal

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import cart, crud, models  # noqa: E402
from db.database import Database  # noqa: E402
from db.errors import (  # noqa: E402
    AmbiguousCartItem,
    CartItemNotFound,
    CartNotFound,
    EmptyCart,
    InsufficientStock,
    InvalidCartState,
    InvalidInput,
    NotFoundError,
    PosValidationError,
    ProductNotFound,
)

COLA, CHIPS, SOUP = 1, 2, 3


class CartEngineTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db = await Database.open(":memory:", seed=True)
        self.employee = await crud.login(self.db, "EMP001", "demo123")
        view = await crud.open_cart(self.db, self.employee.id, "Jane Doe", "555-0100")
        self.cart_id = view.id

    async def asyncTearDown(self):
        await self.db.close()

    async def stock(self, product_id: int) -> int:
        return (await crud.get_product(self.db, product_id)).stock

    async def new_cart(self, name: str = "Bob") -> int:
        view = await crud.open_cart(self.db, self.employee.id, name, "555-0199")
        return view.id

    # ---------- Adding items ----------

    async def test_add_pieces_and_merge(self):
        view = await cart.add_item(self.db, self.cart_id, COLA, 3)
        self.assertEqual(await self.stock(COLA), 21)
        self.assertEqual(view.total, "5.97")
        self.assertEqual(view.item_count, 3)
        self.assertEqual(len(view.items), 1)

        view = await cart.add_item(self.db, self.cart_id, COLA, 2)
        self.assertEqual(len(view.items), 1)
        self.assertEqual(view.items[0].item.quantity, 5)
        self.assertEqual(await self.stock(COLA), 19)
        self.assertEqual(view.total, "9.95")

    async def test_merge_equals_single_add(self):
        other = await self.new_cart()
        await cart.add_item(self.db, self.cart_id, SOUP, 2)
        merged = await cart.add_item(self.db, self.cart_id, SOUP, 3)
        single = await cart.add_item(self.db, other, SOUP, 5)

        self.assertEqual(merged.item_count, single.item_count)
        self.assertEqual(merged.total, single.total)
        self.assertEqual(await self.stock(SOUP), 32 - 10)

    async def test_add_carton_counts_pieces(self):
        view = await cart.add_item(self.db, self.cart_id, CHIPS, 1, is_carton=True)
        self.assertEqual(await self.stock(CHIPS), 3)
        line = view.items[0]
        self.assertTrue(line.item.is_carton)
        self.assertEqual(line.item.price, Decimal("24.99"))
        self.assertEqual(line.pieces, 12)
        self.assertEqual(view.total, "24.99")

        with self.assertRaises(InsufficientStock) as ctx:
            await cart.add_item(self.db, self.cart_id, CHIPS, 1, is_carton=True)
        self.assertEqual(ctx.exception.requested, 12)
        self.assertEqual(ctx.exception.available, 3)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(await self.stock(CHIPS), 3)

    async def test_piece_and_carton_lines_are_separate(self):
        await cart.add_item(self.db, self.cart_id, SOUP, 2)
        view = await cart.add_item(self.db, self.cart_id, SOUP, 1, is_carton=True)
        self.assertEqual(len(view.items), 2)
        self.assertEqual(view.item_count, 3)
        # 2 * 1.79 + 18.99
        self.assertEqual(view.total, "22.57")
        self.assertEqual(await self.stock(SOUP), 32 - 14)

    async def test_price_is_frozen_on_the_line(self):
        await cart.add_item(self.db, self.cart_id, COLA, 1)
        async with self.db.transaction() as conn:
            await conn.execute("UPDATE products SET price = '2.49' WHERE id = ?;", (COLA,))
        view = await cart.add_item(self.db, self.cart_id, COLA, 1)
        self.assertEqual(view.items[0].item.price, Decimal("1.99"))
        self.assertEqual(view.total, "3.98")

    async def test_add_rejects_bad_input(self):
        for bad in (0, -1, 1.5, "2", True, None):
            with self.assertRaises(InvalidInput):
                await cart.add_item(self.db, self.cart_id, COLA, bad)
        with self.assertRaises(ProductNotFound):
            await cart.add_item(self.db, self.cart_id, 999, 1)
        with self.assertRaises(CartNotFound) as ctx:
            await cart.add_item(self.db, 999, COLA, 1)
        self.assertEqual(ctx.exception.status_code, 404)
        with self.assertRaises(InsufficientStock):
            await cart.add_item(self.db, self.cart_id, COLA, 25)
        self.assertEqual(await self.stock(COLA), 24)
        self.assertEqual((await crud.get_cart_view(self.db, self.cart_id)).items, [])

    async def test_rejections_are_logged(self):
        with self.assertLogs("db.cart", level="WARNING") as logs:
            with self.assertRaises(InsufficientStock):
                await cart.add_item(self.db, self.cart_id, COLA, 100)
        self.assertIn("add_item rejected", logs.output[0])

    # ---------- Updating & removing ----------

    async def test_add_then_remove_restores_stock(self):
        await cart.add_item(self.db, self.cart_id, COLA, 4)
        view = await cart.remove_item(self.db, self.cart_id, COLA)
        self.assertEqual(view.items, [])
        self.assertEqual(view.total, "0.00")
        self.assertEqual(await self.stock(COLA), 24)

    async def test_update_quantity_moves_stock_by_difference(self):
        await cart.add_item(self.db, self.cart_id, COLA, 3)
        view = await cart.update_item_quantity(self.db, self.cart_id, COLA, 10)
        self.assertEqual(await self.stock(COLA), 14)
        self.assertEqual(view.item_count, 10)

        view = await cart.update_item_quantity(self.db, self.cart_id, COLA, 1)
        self.assertEqual(await self.stock(COLA), 23)
        self.assertEqual(view.total, "1.99")

        with self.assertRaises(InsufficientStock):
            await cart.update_item_quantity(self.db, self.cart_id, COLA, 30)
        self.assertEqual(await self.stock(COLA), 23)

        view = await cart.update_item_quantity(self.db, self.cart_id, COLA, 0)
        self.assertEqual(view.items, [])
        self.assertEqual(await self.stock(COLA), 24)

    async def test_update_and_remove_carton_lines(self):
        await cart.add_item(self.db, self.cart_id, SOUP, 2)
        await cart.add_item(self.db, self.cart_id, SOUP, 1, is_carton=True)
        self.assertEqual(await self.stock(SOUP), 18)

        with self.assertRaises(AmbiguousCartItem):
            await cart.update_item_quantity(self.db, self.cart_id, SOUP, 1)
        with self.assertRaises(AmbiguousCartItem):
            await cart.remove_item(self.db, self.cart_id, SOUP)

        await cart.update_item_quantity(self.db, self.cart_id, SOUP, 2, is_carton=True)
        self.assertEqual(await self.stock(SOUP), 6)

        await cart.remove_item(self.db, self.cart_id, SOUP, is_carton=True)
        self.assertEqual(await self.stock(SOUP), 30)

        # only the piece line is left, so no unit is needed
        view = await cart.remove_item(self.db, self.cart_id, SOUP)
        self.assertEqual(view.items, [])
        self.assertEqual(await self.stock(SOUP), 32)

    async def test_update_and_remove_missing_line(self):
        with self.assertRaises(CartItemNotFound) as ctx:
            await cart.update_item_quantity(self.db, self.cart_id, COLA, 2)
        self.assertIsInstance(ctx.exception, NotFoundError)
        with self.assertRaises(CartItemNotFound):
            await cart.remove_item(self.db, self.cart_id, COLA)

        await cart.add_item(self.db, self.cart_id, COLA, 1)
        with self.assertRaises(CartItemNotFound):
            await cart.remove_item(self.db, self.cart_id, COLA, is_carton=True)
        with self.assertRaises(InvalidInput):
            await cart.update_item_quantity(self.db, self.cart_id, COLA, -1)

    # ---------- Confirm & reject ----------

    async def test_confirm_cart(self):
        await cart.add_item(self.db, self.cart_id, COLA, 5)
        stock_before = await self.stock(COLA)

        when = datetime(2025, 3, 1, 10, 30, 0)
        order, view = await cart.confirm_cart(self.db, self.cart_id, when)
        self.assertEqual(order.subtotal, Decimal("9.95"))
        self.assertEqual(order.tax, Decimal("0.82"))
        self.assertEqual(order.total, Decimal("10.77"))
        self.assertEqual(order.payment_method, "cash")
        self.assertEqual(order.order_number, crud.make_order_number(self.cart_id, when))
        self.assertEqual(view.status, models.CONFIRMED)
        self.assertEqual(view.cart.updated_at, when)
        # items stay on a confirmed cart as its record
        self.assertEqual(view.item_count, 5)

        self.assertEqual(await self.stock(COLA), stock_before)
        self.assertEqual(await crud.get_order_for_cart(self.db, self.cart_id), order)
        self.assertEqual((await crud.get_transaction(self.db, self.cart_id)).id, self.cart_id)
        self.assertEqual(await crud.list_active_carts(self.db, self.employee.id), [])

    async def test_confirm_empty_or_missing_cart(self):
        with self.assertRaises(EmptyCart):
            await cart.confirm_cart(self.db, self.cart_id)
        self.assertTrue((await crud.get_cart(self.db, self.cart_id)).is_active)
        with self.assertRaises(CartNotFound):
            await cart.confirm_cart(self.db, 999)
        with self.assertRaises(CartNotFound):
            await cart.reject_cart(self.db, 999)

    async def test_reject_restores_stock(self):
        await cart.add_item(self.db, self.cart_id, COLA, 3)
        await cart.add_item(self.db, self.cart_id, CHIPS, 1, is_carton=True)

        view = await cart.reject_cart(self.db, self.cart_id)
        self.assertEqual(view.status, models.REJECTED)
        self.assertEqual(view.items, [])
        self.assertEqual(await self.stock(COLA), 24)
        self.assertEqual(await self.stock(CHIPS), 15)
        self.assertIsNone(await crud.get_order_for_cart(self.db, self.cart_id))

        completed = await crud.list_completed_carts(self.db, self.employee.id)
        self.assertEqual([v.id for v in completed], [self.cart_id])

    async def test_empty_cart_can_be_rejected(self):
        view = await cart.reject_cart(self.db, self.cart_id)
        self.assertEqual(view.status, models.REJECTED)

    async def test_closed_carts_are_frozen(self):
        await cart.add_item(self.db, self.cart_id, COLA, 2)
        await cart.confirm_cart(self.db, self.cart_id)
        rejected = await self.new_cart()
        await cart.reject_cart(self.db, rejected)

        for cart_id in (self.cart_id, rejected):
            with self.assertRaises(InvalidCartState):
                await cart.add_item(self.db, cart_id, COLA, 1)
            with self.assertRaises(InvalidCartState):
                await cart.update_item_quantity(self.db, cart_id, COLA, 1)
            with self.assertRaises(InvalidCartState):
                await cart.remove_item(self.db, cart_id, COLA)
            with self.assertRaises(InvalidCartState):
                await cart.confirm_cart(self.db, cart_id)
            with self.assertRaises(InvalidCartState) as ctx:
                await cart.reject_cart(self.db, cart_id)
            self.assertIsInstance(ctx.exception, PosValidationError)

        self.assertEqual(await self.stock(COLA), 22)

    # ---------- Totals ----------

    def test_compute_totals_rounds_half_up(self):
        product = models.Product(
            id=9, name="Bulk", description=None, price=Decimal("14.45"),
            carton_price=Decimal("140.00"), pcs_per_carton=10, stock=5, category="misc",
        )
        item = models.CartItem(
            id=1, cart_id=1, product_id=9, quantity=1, price=Decimal("14.45")
        )
        subtotal, tax, total = cart.compute_totals([models.CartItemDetail(item, product)])
        self.assertEqual(subtotal, Decimal("14.45"))
        self.assertEqual(tax, Decimal("1.19"))
        self.assertEqual(total, Decimal("15.64"))
        self.assertEqual(cart.compute_totals([]), (Decimal("0.00"),) * 3)

    # ---------- Concurrency ----------

    async def test_concurrent_adds_never_oversell(self):
        other = await self.new_cart()
        results = await asyncio.gather(
            cart.add_item(self.db, self.cart_id, CHIPS, 1, is_carton=True),
            cart.add_item(self.db, other, CHIPS, 1, is_carton=True),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], InsufficientStock)
        self.assertEqual(await self.stock(CHIPS), 3)

        views = [await crud.get_cart_view(self.db, c) for c in (self.cart_id, other)]
        self.assertEqual(sum(v.item_count for v in views), 1)

    async def test_concurrent_piece_adds_sum_up(self):
        await asyncio.gather(
            *(cart.add_item(self.db, self.cart_id, COLA, 1) for _ in range(10))
        )
        view = await crud.get_cart_view(self.db, self.cart_id)
        self.assertEqual(view.item_count, 10)
        self.assertEqual(len(view.items), 1)
        self.assertEqual(await self.stock(COLA), 14)


if __name__ == "__main__":
    unittest.main()
