# provide dataclass models

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from utils.pure import format_money, to_cents

CartStatus = Literal["active", "confirmed", "rejected"]

ACTIVE: CartStatus = "active"
CONFIRMED: CartStatus = "confirmed"
REJECTED: CartStatus = "rejected"
TERMINAL_STATUSES = (CONFIRMED, REJECTED)


@dataclass(frozen=True)
class Employee:
    id: int
    employee_id: str  # login handle, e.g. "EMP001"
    name: str
    password: str


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    phone_number: str
    is_wholesale: bool = False


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    description: Optional[str]
    price: Decimal  # per piece
    carton_price: Decimal
    pcs_per_carton: int
    stock: int  # in pieces
    category: str
    image_url: Optional[str] = None

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    def pieces(self, quantity: int, is_carton: bool) -> int:
        """Quantity expressed in pieces, whatever unit it was counted in."""
        return quantity * self.pcs_per_carton if is_carton else quantity

    def unit_price(self, is_carton: bool) -> Decimal:
        return self.carton_price if is_carton else self.price


@dataclass(frozen=True)
class Cart:
    id: int
    customer_id: int
    employee_id: int
    status: CartStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


@dataclass(frozen=True)
class CartItem:
    id: int
    cart_id: int
    product_id: int
    quantity: int  # in cartons when is_carton, else in pieces
    price: Decimal  # unit price frozen when the line was created
    is_carton: bool = False


@dataclass(frozen=True)
class CartItemDetail:
    item: CartItem
    product: Product

    @property
    def pieces(self) -> int:
        return self.product.pieces(self.item.quantity, self.item.is_carton)

    @property
    def line_total(self) -> Decimal:
        return self.item.price * self.item.quantity

    @property
    def unit_label(self) -> str:
        if self.item.is_carton:
            return f"carton ({self.product.pcs_per_carton} pcs)"
        return "piece"


@dataclass(frozen=True)
class CartView:
    """
    A cart joined with its customer and line items.
    item_count and total are derived on access and never stored.
    """

    cart: Cart
    customer: Customer
    items: List[CartItemDetail] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.cart.id

    @property
    def status(self) -> CartStatus:
        return self.cart.status

    @property
    def item_count(self) -> int:
        return sum(d.item.quantity for d in self.items)

    @property
    def subtotal(self) -> Decimal:
        return to_cents(sum((d.line_total for d in self.items), Decimal("0")))

    @property
    def total(self) -> str:
        return format_money(self.subtotal)


@dataclass(frozen=True)
class Order:
    id: int
    cart_id: int
    order_number: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment_method: str
    created_at: datetime
