# src/db/crud.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from sqlite3 import Row
from typing import List, Optional, Tuple

from db import models
from db.database import Database, execute, fetch_all, fetch_one
from db.errors import DataIntegrityError, InvalidInput
from utils.logger import get_logger
from utils.pure import format_money, to_cents, to_decimal

_logger = get_logger(__name__)

_PRODUCT_COLUMNS = (
    "id, name, description, price, carton_price, pcs_per_carton, stock, "
    "category, image_url"
)
_CART_COLUMNS = "id, customer_id, employee_id, status, created_at, updated_at"
_ITEM_COLUMNS = "id, cart_id, product_id, quantity, price, is_carton"
_ORDER_COLUMNS = (
    "id, cart_id, order_number, subtotal, tax, total, payment_method, created_at"
)


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def _now(when: Optional[datetime]) -> str:
    return (when or datetime.now()).isoformat()


def _row_to_employee(row: Row) -> models.Employee:
    return models.Employee(
        id=row["id"],
        employee_id=row["employee_id"],
        name=row["name"],
        password=row["password"],
    )


def _row_to_customer(row: Row) -> models.Customer:
    return models.Customer(
        id=row["id"],
        name=row["name"],
        phone_number=row["phone_number"],
        is_wholesale=bool(row["is_wholesale"]),
    )


def _row_to_product(row: Row) -> models.Product:
    return models.Product(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price=Decimal(row["price"]),
        carton_price=Decimal(row["carton_price"]),
        pcs_per_carton=row["pcs_per_carton"],
        stock=row["stock"],
        category=row["category"],
        image_url=row["image_url"],
    )


def _row_to_cart(row: Row) -> models.Cart:
    return models.Cart(
        id=row["id"],
        customer_id=row["customer_id"],
        employee_id=row["employee_id"],
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_item(row: Row) -> models.CartItem:
    return models.CartItem(
        id=row["id"],
        cart_id=row["cart_id"],
        product_id=row["product_id"],
        quantity=row["quantity"],
        price=Decimal(row["price"]),
        is_carton=bool(row["is_carton"]),
    )


def _row_to_order(row: Row) -> models.Order:
    return models.Order(
        id=row["id"],
        cart_id=row["cart_id"],
        order_number=row["order_number"],
        subtotal=Decimal(row["subtotal"]),
        tax=Decimal(row["tax"]),
        total=Decimal(row["total"]),
        payment_method=row["payment_method"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# ---------------------------
# Employees
# ---------------------------


async def login(db: Database, employee_id: str, password: str) -> Optional[models.Employee]:
    """Return the Employee if employee_id/password match; otherwise None.

    Plain equality check, not a security mechanism.
    """
    async with db.connect() as conn:
        row = await fetch_one(
            conn,
            "SELECT id, employee_id, name, password FROM employees "
            "WHERE employee_id = ? AND password = ?;",
            ((employee_id or "").strip(), password or ""),
        )
    if not row:
        _logger.info(f"Failed login for employee '{employee_id}'.")
        return None
    return _row_to_employee(row)


async def get_employee(db: Database, id: int) -> Optional[models.Employee]:
    async with db.connect() as conn:
        row = await fetch_one(
            conn,
            "SELECT id, employee_id, name, password FROM employees WHERE id = ?;",
            (id,),
        )
    return _row_to_employee(row) if row else None


async def create_employee(
    db: Database, employee_id: str, name: str, password: str
) -> models.Employee:
    if not employee_id or not name or not password:
        raise InvalidInput("Employee id, name and password are required.")
    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            "INSERT INTO employees(employee_id, name, password) VALUES (?, ?, ?);",
            (employee_id, name, password),
        )
    return models.Employee(id=new_id, employee_id=employee_id, name=name, password=password)


# ---------------------------
# Customers
# ---------------------------


async def create_customer(
    db: Database, name: str, phone_number: str, is_wholesale: bool = False
) -> models.Customer:
    """Insert a customer. No dedup by phone number: each new cart gets its own."""
    name = (name or "").strip()
    phone_number = (phone_number or "").strip()
    if not name:
        raise InvalidInput("Customer name is required.")
    if not phone_number:
        raise InvalidInput("Customer phone number is required.")
    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            "INSERT INTO customers(name, phone_number, is_wholesale) VALUES (?, ?, ?);",
            (name, phone_number, int(bool(is_wholesale))),
        )
    return models.Customer(
        id=new_id, name=name, phone_number=phone_number, is_wholesale=bool(is_wholesale)
    )


async def get_customer(db: Database, customer_id: int) -> Optional[models.Customer]:
    async with db.connect() as conn:
        row = await fetch_one(
            conn,
            "SELECT id, name, phone_number, is_wholesale FROM customers WHERE id = ?;",
            (customer_id,),
        )
    return _row_to_customer(row) if row else None


# ---------------------------
# Products (Catalog)
# ---------------------------


async def list_products(db: Database) -> List[models.Product]:
    """All products in insertion order."""
    async with db.connect() as conn:
        rows = await fetch_all(
            conn, f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY id;"
        )
    return [_row_to_product(row) for row in rows]


async def list_products_by_category(
    db: Database, category: Optional[str]
) -> List[models.Product]:
    """Products of one category; None, "" or "all" returns every product."""
    category = (category or "").strip().lower()
    if not category or category == "all":
        return await list_products(db)
    async with db.connect() as conn:
        rows = await fetch_all(
            conn,
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE category = ? ORDER BY id;",
            (category,),
        )
    return [_row_to_product(row) for row in rows]


async def list_categories(db: Database) -> List[str]:
    """Distinct categories in the order they first appear in the catalog."""
    async with db.connect() as conn:
        rows = await fetch_all(
            conn,
            "SELECT category FROM products GROUP BY category ORDER BY MIN(id);",
        )
    return [row[0] for row in rows]


async def get_product(db: Database, product_id: int) -> Optional[models.Product]:
    """Fetch a product by id."""
    async with db.connect() as conn:
        row = await fetch_one(
            conn,
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?;",
            (product_id,),
        )
    return _row_to_product(row) if row else None


async def create_product(
    db: Database,
    name: str,
    price,
    carton_price,
    pcs_per_carton: int = 10,
    stock: int = 0,
    category: str = "general",
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> models.Product:
    if not name:
        raise InvalidInput("Product name is required.")
    if _to_int(pcs_per_carton) is None or int(pcs_per_carton) < 1:
        raise InvalidInput("Pieces per carton must be at least 1.")
    if _to_int(stock) is None or int(stock) < 0:
        raise InvalidInput("Stock cannot be negative.")
    try:
        price, carton_price = to_cents(price), to_cents(carton_price)
    except ValueError as e:
        raise InvalidInput(str(e)) from e

    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            """
            INSERT INTO products(name, description, price, carton_price,
                                 pcs_per_carton, stock, category, image_url)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                name,
                description,
                format_money(price),
                format_money(carton_price),
                int(pcs_per_carton),
                int(stock),
                category.strip().lower(),
                image_url,
            ),
        )
    return await get_product(db, new_id)


async def adjust_stock(
    db: Database, product_id: int, delta: int
) -> Optional[models.Product]:
    """
    stock += delta, in pieces. Returns the updated product or None if absent.
    No floor is applied here: callers check sufficiency first.
    """
    async with db.transaction() as conn:
        updated = await execute(
            conn,
            "UPDATE products SET stock = stock + ? WHERE id = ?;",
            (int(delta), product_id),
        )
    if not updated:
        return None
    _logger.debug(f"Stock of product {product_id} adjusted by {delta}.")
    return await get_product(db, product_id)


async def consume_stock(db: Database, product_id: int, pieces: int) -> bool:
    """Take pieces from stock only if enough remain. True if taken."""
    async with db.transaction() as conn:
        updated = await execute(
            conn,
            "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?;",
            (int(pieces), product_id, int(pieces)),
        )
    return updated > 0


# ---------------------------
# Carts
# ---------------------------


async def create_cart(
    db: Database, customer_id: int, employee_id: int, when: Optional[datetime] = None
) -> models.Cart:
    ts = _now(when)
    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            """
            INSERT INTO carts(customer_id, employee_id, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (customer_id, employee_id, models.ACTIVE, ts, ts),
        )
    _logger.info(f"Cart {new_id} opened by employee {employee_id}.")
    return await get_cart(db, new_id)


async def open_cart(
    db: Database,
    employee_id: int,
    name: str,
    phone_number: str,
    is_wholesale: bool = False,
    when: Optional[datetime] = None,
) -> models.CartView:
    """Create the walk-in customer and an empty active cart for them."""
    async with db.transaction():
        customer = await create_customer(db, name, phone_number, is_wholesale)
        cart = await create_cart(db, customer.id, employee_id, when)
        return await get_cart_view(db, cart.id)


async def get_cart(db: Database, cart_id: int) -> Optional[models.Cart]:
    async with db.connect() as conn:
        row = await fetch_one(
            conn, f"SELECT {_CART_COLUMNS} FROM carts WHERE id = ?;", (cart_id,)
        )
    return _row_to_cart(row) if row else None


async def set_cart_status(
    db: Database,
    cart_id: int,
    status: models.CartStatus,
    when: Optional[datetime] = None,
) -> Optional[models.Cart]:
    if status not in (models.ACTIVE, *models.TERMINAL_STATUSES):
        raise InvalidInput(f"Unknown cart status {status!r}.")
    async with db.transaction() as conn:
        updated = await execute(
            conn,
            "UPDATE carts SET status = ?, updated_at = ? WHERE id = ?;",
            (status, _now(when), cart_id),
        )
    if not updated:
        return None
    return await get_cart(db, cart_id)


async def list_active_carts(db: Database, employee_id: int) -> List[models.CartView]:
    """Active carts of an employee, newest first."""
    return await _list_carts(db, employee_id, (models.ACTIVE,))


async def _list_carts(
    db: Database, employee_id: int, statuses: Tuple[str, ...]
) -> List[models.CartView]:
    marks = ", ".join("?" * len(statuses))
    async with db.connect() as conn:
        rows = await fetch_all(
            conn,
            f"""
            SELECT id
            FROM carts
            WHERE employee_id = ?
              AND status IN ({marks})
            ORDER BY created_at DESC, id DESC;
            """,
            (employee_id, *statuses),
        )
        views = [await get_cart_view(db, row[0]) for row in rows]
    return [v for v in views if v is not None]


# ---------------------------
# Cart items
# ---------------------------


async def find_cart_items(
    db: Database, cart_id: int, product_id: int, is_carton: Optional[bool] = None
) -> List[models.CartItem]:
    """Lines of a cart for one product; is_carton None matches either unit."""
    sql = f"SELECT {_ITEM_COLUMNS} FROM cart_items WHERE cart_id = ? AND product_id = ?"
    params: list = [cart_id, product_id]
    if is_carton is not None:
        sql += " AND is_carton = ?"
        params.append(int(bool(is_carton)))
    async with db.connect() as conn:
        rows = await fetch_all(conn, sql + " ORDER BY id;", params)
    return [_row_to_item(row) for row in rows]


async def insert_cart_item(
    db: Database,
    cart_id: int,
    product_id: int,
    quantity: int,
    price: Decimal,
    is_carton: bool = False,
) -> models.CartItem:
    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            """
            INSERT INTO cart_items(cart_id, product_id, quantity, price, is_carton)
            VALUES (?, ?, ?, ?, ?);
            """,
            (cart_id, product_id, quantity, format_money(price), int(bool(is_carton))),
        )
    return models.CartItem(
        id=new_id,
        cart_id=cart_id,
        product_id=product_id,
        quantity=quantity,
        price=to_decimal(price),
        is_carton=bool(is_carton),
    )


async def set_cart_item_quantity(db: Database, item_id: int, quantity: int) -> bool:
    async with db.transaction() as conn:
        updated = await execute(
            conn, "UPDATE cart_items SET quantity = ? WHERE id = ?;", (quantity, item_id)
        )
    return updated > 0


async def delete_cart_item(db: Database, item_id: int) -> bool:
    async with db.transaction() as conn:
        deleted = await execute(conn, "DELETE FROM cart_items WHERE id = ?;", (item_id,))
    return deleted > 0


async def list_cart_items(db: Database, cart_id: int) -> List[models.CartItemDetail]:
    """
    Every line of the cart joined with its product, in insertion order.
    A line whose product is gone means corrupted data: DataIntegrityError.
    """
    async with db.connect() as conn:
        rows = await fetch_all(
            conn,
            """
            SELECT ci.id, ci.cart_id, ci.product_id, ci.quantity, ci.price, ci.is_carton,
                   p.id AS p_id, p.name, p.description, p.price AS p_price,
                   p.carton_price, p.pcs_per_carton, p.stock, p.category, p.image_url
            FROM cart_items ci
            LEFT JOIN products p ON p.id = ci.product_id
            WHERE ci.cart_id = ?
            ORDER BY ci.id;
            """,
            (cart_id,),
        )

    details: List[models.CartItemDetail] = []
    for row in rows:
        if row["p_id"] is None:
            _logger.critical(
                f"Cart item {row['id']} of cart {cart_id} references missing "
                f"product {row['product_id']}."
            )
            raise DataIntegrityError(
                f"Product {row['product_id']} referenced by cart {cart_id} not found."
            )
        product = models.Product(
            id=row["p_id"],
            name=row["name"],
            description=row["description"],
            price=Decimal(row["p_price"]),
            carton_price=Decimal(row["carton_price"]),
            pcs_per_carton=row["pcs_per_carton"],
            stock=row["stock"],
            category=row["category"],
            image_url=row["image_url"],
        )
        details.append(models.CartItemDetail(item=_row_to_item(row), product=product))
    return details


# ---------------------------
# Cart view
# ---------------------------


async def get_cart_view(db: Database, cart_id: int) -> Optional[models.CartView]:
    """Cart + customer + items, recomputed on every call.
    None if the cart or its customer is missing."""
    async with db.connect():
        cart = await get_cart(db, cart_id)
        if cart is None:
            return None
        customer = await get_customer(db, cart.customer_id)
        if customer is None:
            _logger.warning(f"Cart {cart_id} has no customer {cart.customer_id}.")
            return None
        items = await list_cart_items(db, cart_id)
    return models.CartView(cart=cart, customer=customer, items=items)


# ---------------------------
# Orders & Transactions
# ---------------------------


def make_order_number(cart_id: int, when: datetime) -> str:
    """POS-<epoch millis>-<cart id>; unique because a cart has at most one order."""
    return f"POS-{int(when.timestamp() * 1000)}-{cart_id}"


async def create_order(
    db: Database,
    cart_id: int,
    subtotal: Decimal,
    tax: Decimal,
    total: Decimal,
    when: Optional[datetime] = None,
    payment_method: str = "cash",
) -> models.Order:
    when = when or datetime.now()
    order_number = make_order_number(cart_id, when)
    async with db.transaction() as conn:
        new_id = await execute(
            conn,
            """
            INSERT INTO orders(cart_id, order_number, subtotal, tax, total,
                               payment_method, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                cart_id,
                order_number,
                format_money(subtotal),
                format_money(tax),
                format_money(total),
                payment_method,
                when.isoformat(),
            ),
        )
    return models.Order(
        id=new_id,
        cart_id=cart_id,
        order_number=order_number,
        subtotal=to_cents(subtotal),
        tax=to_cents(tax),
        total=to_cents(total),
        payment_method=payment_method,
        created_at=when,
    )


async def get_order(db: Database, order_id: int) -> Optional[models.Order]:
    async with db.connect() as conn:
        row = await fetch_one(
            conn, f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = ?;", (order_id,)
        )
    return _row_to_order(row) if row else None


async def get_order_for_cart(db: Database, cart_id: int) -> Optional[models.Order]:
    async with db.connect() as conn:
        row = await fetch_one(
            conn, f"SELECT {_ORDER_COLUMNS} FROM orders WHERE cart_id = ?;", (cart_id,)
        )
    return _row_to_order(row) if row else None


async def get_order_detail(
    db: Database, order_id: int
) -> Tuple[Optional[models.Order], Optional[models.CartView]]:
    """
    Return (order, cart view) for a specific order, or (None, None).
    """
    async with db.connect():
        order = await get_order(db, order_id)
        if order is None:
            return None, None
        view = await get_cart_view(db, order.cart_id)
    if view is None:
        return None, None
    return order, view


async def list_completed_carts(db: Database, employee_id: int) -> List[models.CartView]:
    """Confirmed and rejected carts of an employee, newest first."""
    return await _list_carts(db, employee_id, models.TERMINAL_STATUSES)


async def get_transaction(db: Database, cart_id: int) -> Optional[models.CartView]:
    """A cart view, only once the cart is confirmed or rejected."""
    async with db.connect():
        cart = await get_cart(db, cart_id)
        if cart is None or cart.status not in models.TERMINAL_STATUSES:
            return None
        return await get_cart_view(db, cart_id)
