from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import DataTable, Label, Select

import db.crud
from utils.messages import CartChangedMessage, ModeSwitchedMessage
from views.base_screen import BaseScreen
from views.modal_product_options import ProductOptionsModal


class CatalogScreen(BaseScreen):
    """
    Product catalog with a category filter.
    Selecting a product opens the piece / carton options for the current cart.
    """

    category = reactive("all", init=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-catalog-filter"):
            yield Label("Category", id="label-category")
            yield Select(
                [("All Categories", "all")],
                value="all",
                allow_blank=False,
                id="select-category",
            )
            yield Label("", id="label-current-cart")
        yield DataTable(id="table-products")

    async def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns(
            "ID", "Name", "Category", "Price ($)", "Carton ($)", "Pcs/Carton", "Stock", ""
        )

        categories = await db.crud.list_categories(self.db)
        self.query_one("#select-category", Select).set_options(
            [("All Categories", "all")] + [(c.title(), c) for c in categories]
        )
        self.query_one("#select-category", Select).value = "all"
        self.reload()

    def watch_category(self, _old: str, _new: str) -> None:
        self.reload()

    @on(Select.Changed, "#select-category")
    def handle_category_changed(self, event: Select.Changed) -> None:
        if event.value is not Select.BLANK:
            self.category = event.value

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    def handle_refresh(self) -> None:
        self.reload()

    @work(exclusive=True, group="catalog")
    async def reload(self) -> None:
        products = await db.crud.list_products_by_category(self.db, self.category)

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(
                p.id,
                p.name,
                p.category,
                f"{p.price:.2f}",
                f"{p.carton_price:.2f}",
                p.pcs_per_carton,
                p.stock,
                "" if p.in_stock else "Out of stock",
                key=str(p.id),
            )

        label = self.query_one("#label-current-cart", Label)
        if self.state.cart_id is None:
            label.update("No cart selected")
        else:
            view = await db.crud.get_cart_view(self.db, self.state.cart_id)
            if view is None or not view.cart.is_active:
                self.state.select_cart(None)
                label.update("No cart selected")
            else:
                label.update(
                    f"Cart #{view.id} - {view.customer.name}: "
                    f"{view.item_count} items, ${view.total}"
                )

    @on(DataTable.RowSelected, "#table-products")
    @work()
    async def handle_product_selected(self, event: DataTable.RowSelected) -> None:
        if self.state.cart_id is None:
            self.notify("Open or select a cart first.", severity="warning")
            return
        product_id = int(event.row_key.value)
        if await self.app.push_screen_wait(
            ProductOptionsModal(product_id, self.state.cart_id)
        ):
            self.post_message(CartChangedMessage(self.state.cart_id))
