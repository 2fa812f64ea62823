from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer

import db.crud
from db.models import CONFIRMED, CartView
from utils.messages import CartClosedMessage, ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_payment import receipt_markdown


class TransactionHistoryScreen(BaseScreen):
    """
    Confirmed and rejected carts of the logged-in employee.

    Layout:
    - Markdown receipt of the highlighted transaction at the top.
    - Transactions table below, newest first.
    """

    def __init__(self) -> None:
        super().__init__()
        self._carts: List[CartView] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-transaction-detail", show_table_of_contents=False)
            yield DataTable(id="table-transactions")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Cart", "Customer", "Status", "Items", "Subtotal ($)", "Closed")
        self.handle_refresh()

    @on(Button.Pressed, "#btn-refresh")
    @on(CartClosedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="transactions")
    async def handle_refresh(self) -> None:
        if self.state.employee is None:
            return
        self._carts = await db.crud.list_completed_carts(self.db, self.state.employee_pk)

        table = self.query_one(DataTable)
        table.clear()
        for view in self._carts:
            table.add_row(
                view.id,
                view.customer.name,
                view.status.title(),
                view.item_count,
                view.total,
                f"{view.cart.updated_at:%Y-%m-%d %H:%M}",
                key=str(view.id),
            )
        if self._carts:
            table.cursor_coordinate = (0, 0)
            self._render_detail(self._carts[0].id)
        else:
            await self.query_one("#md-transaction-detail", MarkdownViewer).document.update(
                "### No completed transactions yet."
            )

    @on(DataTable.RowHighlighted, "#table-transactions")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value is not None:
            self._render_detail(int(event.row_key.value))

    @work(exclusive=True, group="transaction-detail")
    async def _render_detail(self, cart_id: int) -> None:
        md_view = self.query_one("#md-transaction-detail", MarkdownViewer)
        view = await db.crud.get_transaction(self.db, cart_id)
        if view is None:
            await md_view.document.update("### Select a transaction to view its details.")
            return
        order = None
        if view.status == CONFIRMED:
            order = await db.crud.get_order_for_cart(self.db, cart_id)
        await md_view.document.update(receipt_markdown(view, order))
