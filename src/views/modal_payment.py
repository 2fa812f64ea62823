from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, MarkdownViewer

from db.models import CartView, Order
from utils.pure import format_money, generate_markdown_table


def receipt_markdown(view: CartView, order: Optional[Order] = None) -> str:
    """
    Receipt for a cart: customer, lines, and the order totals when there is an order.
    """
    customer = view.customer
    header = (
        f"### Cart #{view.id} ({view.status})\n\n"
        f"Customer: {customer.name}, {customer.phone_number}"
        f"{' (wholesale)' if customer.is_wholesale else ''}  \n"
        f"Opened: {view.cart.created_at:%Y-%m-%d %H:%M}  \n"
        f"Closed: {view.cart.updated_at:%Y-%m-%d %H:%M}\n\n"
    )
    if order is not None:
        header = f"## Order {order.order_number}\n\n" + header

    rows = [
        [
            d.product.name,
            d.unit_label,
            d.item.quantity,
            format_money(d.item.price),
            format_money(d.line_total),
        ]
        for d in view.items
    ]
    table = generate_markdown_table(
        ["Product", "Unit", "Qty", "Unit Price", "Line Total"],
        rows,
        ["l", "c", "r", "r", "r"],
    )
    if not table:
        table = "_No items._"

    if order is None:
        footer = f"\n\n**Subtotal:** ${view.total}"
    else:
        footer = (
            f"\n\n**Subtotal:** ${format_money(order.subtotal)}  \n"
            f"**Tax (8.25%):** ${format_money(order.tax)}  \n"
            f"**Total:** ${format_money(order.total)}  \n"
            f"Paid by {order.payment_method}"
        )
    return header + table + footer


class PaymentModal(ModalScreen[None]):
    """
    Receipt shown after a cart is confirmed.
    """

    def __init__(self, order: Order, view: CartView) -> None:
        super().__init__()
        self._order = order
        self._view = view

    def compose(self) -> ComposeResult:
        with Vertical(id="div-receipt"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Horizontal():
                yield Button("Done", id="btn-quit", variant="primary")

    async def on_mount(self):
        await self.query_one(MarkdownViewer).document.update(
            receipt_markdown(self._view, self._order)
        )
        self.query_one("#btn-quit").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.notify(
            f"Payment received. Order {self._order.order_number}, "
            f"total ${format_money(self._order.total)}."
        )
        self.dismiss(None)
