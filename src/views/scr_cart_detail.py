from typing import List, Optional, Tuple

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Rule

from db import cart as cart_engine
from db.crud import get_cart_view
from db.errors import PosError
from db.models import CartItemDetail, CartView
from utils.messages import CartChangedMessage, CartClosedMessage, ModeSwitchedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal, SimpleDialogModal
from views.modal_payment import PaymentModal


class CartDetailScreen(BaseScreen):
    """
    Lines of the current cart with quantity controls, plus confirm / reject.
    """

    BINDINGS = [
        Binding("plus", "change_qty(1)", "+1", show=True),
        Binding("minus", "change_qty(-1)", "-1", show=True),
        Binding("delete", "remove_line", "Remove", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._view: Optional[CartView] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("No cart selected", id="label-cart-header")
            yield DataTable(id="table-cart-items")
            yield Label("", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("-", id="btn-sub-qty")
            yield Button("+", id="btn-add-qty")
            yield Button("Remove", id="btn-remove")
            yield Button("Add Products", id="btn-catalog")
            yield Button("Reject Cart", id="btn-reject", variant="error")
            yield Button("Confirm Cart", id="btn-confirm", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Product", "Unit", "Qty", "Pieces", "Unit Price ($)", "Line Total ($)")
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="cart")
    async def handle_cart_change(self) -> None:
        """
        Reload the cart view; totals are recomputed by the store every time
        """
        cart_id = self.state.cart_id
        self._view = await get_cart_view(self.db, cart_id) if cart_id is not None else None

        table = self.query_one(DataTable)
        table.clear()
        header = self.query_one("#label-cart-header", Label)
        total_label = self.query_one("#label-cart-total", Label)

        if self._view is None:
            header.update("No cart selected. Pick one from Active Carts.")
            total_label.update("")
            self._set_buttons(False)
            return

        view = self._view
        customer = view.customer
        header.update(
            f"Cart #{view.id} ({view.status}) - {customer.name}, {customer.phone_number}"
            + (" [wholesale]" if customer.is_wholesale else "")
        )
        for d in view.items:
            table.add_row(
                d.product.name,
                d.unit_label,
                d.item.quantity,
                d.pieces,
                format_money(d.item.price),
                format_money(d.line_total),
                key=self._line_key(d),
            )

        subtotal, tax, total = cart_engine.compute_totals(view.items)
        total_label.update(
            f"Items: {view.item_count}   Subtotal: ${format_money(subtotal)}   "
            f"Tax (8.25%): ${format_money(tax)}   Total: ${format_money(total)}"
        )
        self._set_buttons(view.cart.is_active)

    def _set_buttons(self, enabled: bool) -> None:
        for btn_id in ("#btn-sub-qty", "#btn-add-qty", "#btn-remove", "#btn-reject", "#btn-confirm"):
            self.query_one(btn_id, Button).disabled = not enabled

    @staticmethod
    def _line_key(detail: CartItemDetail) -> str:
        return f"{detail.product.id}:{int(detail.item.is_carton)}"

    def _selected_line(self) -> Optional[Tuple[int, bool, int]]:
        """(product id, is_carton, quantity) of the highlighted row"""
        if self._view is None or not self._view.items:
            return None
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        product_id, is_carton = row_key.value.split(":")
        lines: List[CartItemDetail] = [
            d for d in self._view.items if self._line_key(d) == row_key.value
        ]
        quantity = lines[0].item.quantity if lines else 0
        return int(product_id), is_carton == "1", quantity

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self) -> None:
        self.action_change_qty(1)

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self) -> None:
        self.action_change_qty(-1)

    @on(Button.Pressed, "#btn-remove")
    def handle_remove(self) -> None:
        self.action_remove_line()

    @work(exclusive=True, group="cart-edit")
    async def action_change_qty(self, delta: int) -> None:
        line = self._selected_line()
        if line is None:
            return
        product_id, is_carton, quantity = line
        try:
            await cart_engine.update_item_quantity(
                self.db, self.state.cart_id, product_id, quantity + delta, is_carton
            )
        except PosError as e:
            self.notify(str(e), severity="error")
            return
        self.post_message(CartChangedMessage(self.state.cart_id))

    @work(exclusive=True, group="cart-edit")
    async def action_remove_line(self) -> None:
        line = self._selected_line()
        if line is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return
        product_id, is_carton, _ = line
        try:
            await cart_engine.remove_item(self.db, self.state.cart_id, product_id, is_carton)
        except PosError as e:
            self.notify(str(e), severity="error")
            return
        self.notify("Item removed from cart.", severity="information")
        self.post_message(CartChangedMessage(self.state.cart_id))

    @on(Button.Pressed, "#btn-catalog")
    async def handle_open_catalog(self) -> None:
        await self.app.open_mode("catalog")

    @on(Button.Pressed, "#btn-reject")
    @work(exclusive=True, group="cart-edit")
    async def handle_reject(self) -> None:
        cart_id = self.state.cart_id
        if not await self.app.push_screen_wait(
            DialogModal(
                "Reject this cart? All items go back to stock.",
                primary_text="Reject",
                secondary_text="Keep",
                tone="error",
            )
        ):
            return
        try:
            await cart_engine.reject_cart(self.db, cart_id)
        except PosError as e:
            self.notify(str(e), severity="error")
            return
        self.notify(f"Cart #{cart_id} rejected.", severity="warning")
        await self._close_cart(cart_id, "rejected")

    @on(Button.Pressed, "#btn-confirm")
    @work(exclusive=True, group="cart-edit")
    async def handle_confirm(self) -> None:
        cart_id = self.state.cart_id
        if self._view is None or not self._view.items:
            self.app.push_screen(
                SimpleDialogModal("Cart is empty. Add products before confirming.", "warning")
            )
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                "Confirm this cart and take cash payment? This cannot be undone.",
                primary_text="Confirm",
                secondary_text="Back",
                tone="positive",
            )
        ):
            return
        try:
            order, view = await cart_engine.confirm_cart(self.db, cart_id)
        except PosError as e:
            self.notify(str(e), severity="error")
            return
        await self.app.push_screen_wait(PaymentModal(order, view))
        await self._close_cart(cart_id, "confirmed")

    async def _close_cart(self, cart_id: int, status: str) -> None:
        self.state.select_cart(None)
        self.app.post_message(CartClosedMessage(cart_id, status))
        await self.app.open_mode("carts")
