import os
import sys
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import crud  # noqa: E402
from db import models  # noqa: E402
from db.database import Database, fetch_one  # noqa: E402
from db.errors import DataIntegrityError, InvalidInput  # noqa: E402
from utils import pure  # noqa: E402


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Each test gets its own database file, created and seeded on start
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")

    async def asyncSetUp(self):
        self.db = await Database.open(self.db_path, seed=True)

    async def asyncTearDown(self):
        await self.db.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    # ---------- Database lifecycle ----------

    async def test_start_is_idempotent_and_keeps_data(self):
        self.assertTrue(self.db.started)
        await self.db.start()
        self.assertEqual(len(await crud.list_products(self.db)), 8)

        # reopening an existing file neither recreates nor reseeds it
        await crud.adjust_stock(self.db, 1, -4)
        await self.db.close()
        self.assertFalse(self.db.started)
        async with Database(self.db_path, seed=True) as db2:
            self.assertEqual(len(await crud.list_products(db2)), 8)
            self.assertEqual((await crud.get_product(db2, 1)).stock, 20)
        self.db = await Database.open(self.db_path)

    async def test_unstarted_database_raises(self):
        db = Database(":memory:")
        with self.assertRaises(RuntimeError):
            await crud.list_products(db)

    async def test_transaction_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            async with self.db.transaction():
                await crud.adjust_stock(self.db, 1, -10)
                await crud.create_customer(self.db, "Ghost", "555-0000")
                raise RuntimeError("boom")

        self.assertEqual((await crud.get_product(self.db, 1)).stock, 24)
        async with self.db.connect() as conn:
            row = await fetch_one(conn, "SELECT COUNT(*) FROM customers;")
        self.assertEqual(row[0], 0)

    # ---------- Employees ----------

    async def test_login_and_employees(self):
        emp = await crud.login(self.db, "EMP001", "demo123")
        self.assertIsNotNone(emp)
        self.assertEqual(emp.name, "John Doe")
        self.assertEqual((await crud.login(self.db, "  EMP001 ", "demo123")).id, emp.id)
        self.assertIsNone(await crud.login(self.db, "EMP001", "wrong"))
        self.assertIsNone(await crud.login(self.db, "EMP999", "demo123"))
        self.assertIsNone(await crud.login(self.db, None, None))

        new = await crud.create_employee(self.db, "EMP002", "Mary Major", "pw")
        self.assertEqual(await crud.get_employee(self.db, new.id), new)
        self.assertIsNone(await crud.get_employee(self.db, 424242))
        with self.assertRaises(InvalidInput):
            await crud.create_employee(self.db, "", "Nobody", "pw")

    # ---------- Customers ----------

    async def test_create_and_get_customer(self):
        cust = await crud.create_customer(self.db, "  Jane Doe ", " 555-0100 ", True)
        self.assertEqual(cust.name, "Jane Doe")
        self.assertEqual(cust.phone_number, "555-0100")
        self.assertTrue(cust.is_wholesale)
        self.assertEqual(await crud.get_customer(self.db, cust.id), cust)
        self.assertIsNone(await crud.get_customer(self.db, 9999))

        # same phone number twice is two customers
        again = await crud.create_customer(self.db, "Jane Doe", "555-0100")
        self.assertNotEqual(again.id, cust.id)
        self.assertFalse(again.is_wholesale)

        with self.assertRaises(InvalidInput):
            await crud.create_customer(self.db, "   ", "555-0100")
        with self.assertRaises(InvalidInput):
            await crud.create_customer(self.db, "Jane", "")

    # ---------- Products ----------

    async def test_seeded_catalog(self):
        products = await crud.list_products(self.db)
        self.assertEqual([p.id for p in products], list(range(1, 9)))

        cola = await crud.get_product(self.db, 1)
        self.assertEqual(cola.name, "Coca Cola")
        self.assertEqual(cola.price, Decimal("1.99"))
        self.assertEqual(cola.carton_price, Decimal("35.99"))
        self.assertEqual(cola.pcs_per_carton, 24)
        self.assertEqual(cola.stock, 24)
        self.assertTrue(cola.in_stock)
        self.assertEqual(cola.pieces(2, True), 48)
        self.assertEqual(cola.pieces(2, False), 2)
        self.assertEqual(cola.unit_price(True), Decimal("35.99"))
        self.assertIsNone(await crud.get_product(self.db, 999))

    async def test_categories_and_filter(self):
        self.assertEqual(
            await crud.list_categories(self.db),
            ["drinks", "snacks", "canned", "fresh", "dairy"],
        )
        drinks = await crud.list_products_by_category(self.db, "Drinks ")
        self.assertEqual([p.id for p in drinks], [1, 6])
        for every in ("all", "", None):
            self.assertEqual(len(await crud.list_products_by_category(self.db, every)), 8)
        self.assertEqual(await crud.list_products_by_category(self.db, "toys"), [])

    async def test_create_product(self):
        prod = await crud.create_product(
            self.db, "Water", "0.995", 10, pcs_per_carton=12, stock=0, category=" Drinks"
        )
        self.assertEqual(prod.price, Decimal("1.00"))
        self.assertEqual(prod.carton_price, Decimal("10.00"))
        self.assertEqual(prod.category, "drinks")
        self.assertFalse(prod.in_stock)

        with self.assertRaises(InvalidInput):
            await crud.create_product(self.db, "Bad", "1", "10", pcs_per_carton=0)
        with self.assertRaises(InvalidInput):
            await crud.create_product(self.db, "Bad", "1", "10", stock=-1)
        with self.assertRaises(InvalidInput):
            await crud.create_product(self.db, "Bad", "abc", "10")

    async def test_adjust_and_consume_stock(self):
        self.assertEqual((await crud.adjust_stock(self.db, 2, 5)).stock, 20)
        self.assertEqual((await crud.adjust_stock(self.db, 2, -20)).stock, 0)
        # plain accumulator, no floor
        self.assertEqual((await crud.adjust_stock(self.db, 2, -1)).stock, -1)
        self.assertIsNone(await crud.adjust_stock(self.db, 999, 1))

        self.assertTrue(await crud.consume_stock(self.db, 3, 32))
        self.assertFalse(await crud.consume_stock(self.db, 3, 1))
        self.assertEqual((await crud.get_product(self.db, 3)).stock, 0)

    # ---------- Carts ----------

    async def test_open_cart_and_list(self):
        t0 = datetime(2025, 1, 2, 9, 0, 0)
        v1 = await crud.open_cart(self.db, 1, "Jane", "555-0100", when=t0)
        v2 = await crud.open_cart(self.db, 1, "Bob", "555-0101", True, t0 + timedelta(minutes=5))
        self.assertEqual(v1.status, models.ACTIVE)
        self.assertEqual(v1.items, [])
        self.assertEqual(v1.item_count, 0)
        self.assertEqual(v1.total, "0.00")
        self.assertEqual(v1.cart.created_at, t0)
        self.assertTrue(v2.customer.is_wholesale)

        active = await crud.list_active_carts(self.db, 1)
        self.assertEqual([v.id for v in active], [v2.id, v1.id])
        self.assertEqual(await crud.list_active_carts(self.db, 99), [])

        # a failed customer leaves no cart behind
        with self.assertRaises(InvalidInput):
            await crud.open_cart(self.db, 1, "", "555-0102")
        self.assertEqual(len(await crud.list_active_carts(self.db, 1)), 2)

    async def test_set_cart_status(self):
        view = await crud.open_cart(self.db, 1, "Jane", "555-0100")
        later = datetime(2030, 1, 1, 12, 0, 0)
        cart = await crud.set_cart_status(self.db, view.id, models.REJECTED, later)
        self.assertEqual(cart.status, models.REJECTED)
        self.assertEqual(cart.updated_at, later)
        self.assertFalse(cart.is_active)
        self.assertIsNone(await crud.set_cart_status(self.db, 999, models.CONFIRMED))
        with self.assertRaises(InvalidInput):
            await crud.set_cart_status(self.db, view.id, "lost")

    async def test_cart_items_and_view(self):
        view = await crud.open_cart(self.db, 1, "Jane", "555-0100")
        await crud.insert_cart_item(self.db, view.id, 1, 3, Decimal("1.99"))
        await crud.insert_cart_item(self.db, view.id, 1, 1, Decimal("35.99"), True)

        self.assertEqual(len(await crud.find_cart_items(self.db, view.id, 1)), 2)
        cartons = await crud.find_cart_items(self.db, view.id, 1, True)
        self.assertEqual([i.quantity for i in cartons], [1])

        view = await crud.get_cart_view(self.db, view.id)
        self.assertEqual(view.item_count, 4)
        self.assertEqual(view.subtotal, Decimal("41.96"))
        self.assertEqual(view.total, "41.96")
        self.assertEqual([d.pieces for d in view.items], [3, 24])
        self.assertEqual(view.items[1].unit_label, "carton (24 pcs)")

        item_id = cartons[0].id
        self.assertTrue(await crud.set_cart_item_quantity(self.db, item_id, 2))
        self.assertTrue(await crud.delete_cart_item(self.db, item_id))
        self.assertFalse(await crud.delete_cart_item(self.db, item_id))
        self.assertIsNone(await crud.get_cart_view(self.db, 999))

    async def test_missing_product_is_integrity_error(self):
        view = await crud.open_cart(self.db, 1, "Jane", "555-0100")
        await crud.insert_cart_item(self.db, view.id, 4, 1, Decimal("3.99"))
        async with self.db.connect() as conn:
            await conn.execute("PRAGMA foreign_keys = OFF;")
        async with self.db.transaction() as conn:
            await conn.execute("DELETE FROM products WHERE id = 4;")

        with self.assertLogs("db.crud", level="CRITICAL"):
            with self.assertRaises(DataIntegrityError) as ctx:
                await crud.get_cart_view(self.db, view.id)
        self.assertEqual(ctx.exception.status_code, 500)

    # ---------- Orders & transactions ----------

    async def test_orders_and_transactions(self):
        view = await crud.open_cart(self.db, 1, "Jane", "555-0100")
        await crud.insert_cart_item(self.db, view.id, 1, 5, Decimal("1.99"))

        # active carts are not transactions yet
        self.assertIsNone(await crud.get_transaction(self.db, view.id))
        self.assertEqual(await crud.list_completed_carts(self.db, 1), [])

        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        order = await crud.create_order(
            self.db, view.id, Decimal("9.95"), Decimal("0.82"), Decimal("10.77"), when
        )
        await crud.set_cart_status(self.db, view.id, models.CONFIRMED, when)
        self.assertEqual(order.order_number, f"POS-1704067200000-{view.id}")
        self.assertEqual(order.payment_method, "cash")

        self.assertEqual(await crud.get_order(self.db, order.id), order)
        self.assertEqual(await crud.get_order_for_cart(self.db, view.id), order)
        self.assertIsNone(await crud.get_order(self.db, 999))

        got_order, got_view = await crud.get_order_detail(self.db, order.id)
        self.assertEqual(got_order.total, Decimal("10.77"))
        self.assertEqual(got_view.total, "9.95")
        self.assertEqual(await crud.get_order_detail(self.db, 999), (None, None))

        txn = await crud.get_transaction(self.db, view.id)
        self.assertEqual(txn.status, models.CONFIRMED)
        self.assertEqual([v.id for v in await crud.list_completed_carts(self.db, 1)], [view.id])
        self.assertIsNone(await crud.get_transaction(self.db, 999))

    # ---------- tiny helper coverage ----------

    def test__to_int_helper(self):
        self.assertEqual(crud._to_int("3"), 3)
        self.assertIsNone(crud._to_int("nan"))
        self.assertIsNone(crud._to_int(None))

    def test_money_helpers(self):
        self.assertEqual(pure.to_cents("0.825"), Decimal("0.83"))
        self.assertEqual(pure.to_cents(Decimal("1.192125")), Decimal("1.19"))
        self.assertEqual(pure.to_decimal(1.99), Decimal("1.99"))
        self.assertEqual(pure.format_money(5), "5.00")
        with self.assertRaises(ValueError):
            pure.to_decimal("abc")

    def test_generate_markdown_table(self):
        md = pure.generate_markdown_table(["A", "B"], [[1, 2]], ["l", "r"])
        self.assertEqual(md, "| A | B |\n| :--- | ---: |\n| 1 | 2 |")
        self.assertEqual(pure.generate_markdown_table(["A"], []), "")
        with self.assertRaises(ValueError):
            pure.generate_markdown_table(["A", "B"], [[1, 2]], ["l"])


if __name__ == "__main__":
    unittest.main()
