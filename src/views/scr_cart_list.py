from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

import db.crud
from db.models import CartView
from utils.messages import CartChangedMessage, CartClosedMessage, ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_customer import CustomerModal


class CartListScreen(BaseScreen):
    """
    Active carts of the logged-in employee, newest first.
    Select a row to continue that cart; "New Cart" opens one for a walk-in customer.
    """

    BINDINGS = [
        Binding("n", "new_cart", "New Cart", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._carts: List[CartView] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("Active Carts", id="label-carts-title")
            yield DataTable(id="table-carts")
            yield Label("No active carts. Create one to start selling.", id="label-no-carts")
        with Horizontal(id="hort-buttons"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("New Cart", id="btn-new-cart", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Cart", "Customer", "Phone", "Type", "Items", "Total ($)", "Opened")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-refresh")
    @on(CartChangedMessage)
    @on(CartClosedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="carts")
    async def handle_refresh(self) -> None:
        if self.state.employee is None:
            return
        self._carts = await db.crud.list_active_carts(self.db, self.state.employee_pk)

        table = self.query_one(DataTable)
        table.clear()
        for view in self._carts:
            table.add_row(
                view.id,
                view.customer.name,
                view.customer.phone_number,
                "Wholesale" if view.customer.is_wholesale else "Retail",
                view.item_count,
                view.total,
                f"{view.cart.created_at:%H:%M}",
                key=str(view.id),
            )
        self.query_one("#label-no-carts").display = not self._carts

    @on(DataTable.RowSelected, "#table-carts")
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        cart_id = int(event.row_key.value)
        self.state.select_cart(cart_id)
        await self.app.open_mode("cart_detail")

    @on(Button.Pressed, "#btn-new-cart")
    def handle_new_cart_pressed(self) -> None:
        self.action_new_cart()

    @work()
    async def action_new_cart(self) -> None:
        cart_id = await self.app.push_screen_wait(CustomerModal(self.state.employee_pk))
        if cart_id is None:
            return
        self.state.select_cart(cart_id)
        self.post_message(CartChangedMessage(cart_id))
        await self.app.open_mode("catalog")
