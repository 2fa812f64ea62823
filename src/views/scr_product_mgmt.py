from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input

from db.crud import list_products
from db.models import Product
from utils.messages import ModeSwitchedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen


class ProductManagementScreen(BaseScreen):
    """
    Admin product list with a name / category filter.
    Add and delete are demo actions: they notify and never touch the store.
    """

    def __init__(self) -> None:
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Input(id="input-search", placeholder="Search products...")
            yield DataTable(id="table-products")
        with Horizontal(id="hort-buttons"):
            yield Button("Delete Product", id="btn-delete", variant="error")
            yield Button("Add Product", id="btn-add", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price ($)", "Carton ($)", "Stock")
        self.query_one("#input-search", Input).focus()
        self.handle_reload()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @work(exclusive=True, group="products")
    async def handle_reload(self) -> None:
        self._products = await list_products(self.db)
        self._render(self.query_one("#input-search", Input).value)

    @on(Input.Changed, "#input-search")
    def handle_search(self, event: Input.Changed) -> None:
        self._render(event.value)

    def _render(self, query: str) -> None:
        query = query.strip().lower()
        table = self.query_one(DataTable)
        table.clear()
        for p in self._products:
            if query and query not in p.name.lower() and query not in p.category:
                continue
            table.add_row(
                p.id,
                p.name,
                p.category,
                format_money(p.price),
                format_money(p.carton_price),
                p.stock,
                key=str(p.id),
            )

    @on(Button.Pressed, "#btn-add")
    def handle_add(self) -> None:
        self.notify("Add product is simulated in this demo.", severity="information")

    @on(Button.Pressed, "#btn-delete")
    def handle_delete(self) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            self.notify("No product selected.", severity="warning")
            return
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        self.notify(
            f"Delete product {row_key.value} is simulated in this demo.",
            severity="warning",
        )
