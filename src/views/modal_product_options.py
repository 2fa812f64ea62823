from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.cart import add_item
from db.crud import get_product
from db.errors import PosError
from db.models import Product
from utils.pure import format_money, generate_markdown_table


class ProductOptionsModal(ModalScreen[bool]):
    """
    Add a product to a cart either per piece or per carton.
    Returns True if the cart changed, False if not.
    """

    CSS = """
    .input-qty {
        width: 10;
    }
    .btn-step {
        min-width: 4;
    }
    """

    def __init__(self, product_id: int, cart_id: int) -> None:
        super().__init__()
        self._product_id = product_id
        self._cart_id = cart_id
        self._prod: Product | None = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Pieces", id="label-retail")
                with Horizontal():
                    yield Button("-", id="btn-sub-retail", classes="btn-step")
                    yield Input("1", id="input-retail-qty", type="integer", classes="input-qty")
                    yield Button("+", id="btn-add-retail", classes="btn-step")
                    yield Button("Add Pieces", id="btn-addcart-retail", variant="primary")
                yield Label("Cartons", id="label-carton")
                with Horizontal():
                    yield Button("-", id="btn-sub-carton", classes="btn-step")
                    yield Input("1", id="input-carton-qty", type="integer", classes="input-qty")
                    yield Button("+", id="btn-add-carton", classes="btn-step")
                    yield Button("Add Cartons", id="btn-addcart-carton", variant="primary")
                yield Button("Go Back", id="btn-quit")

    async def on_mount(self):
        self._prod = await get_product(self.app.db, self._product_id)
        if self._prod is None:
            self.notify(f"Product {self._product_id} not found.", severity="error")
            self.dismiss(False)
            return
        prod = self._prod

        table_rows = [
            ["Name", prod.name],
            ["Description", prod.description or "-"],
            ["Category", prod.category],
            ["Price per piece", f"${format_money(prod.price)}"],
            ["Price per carton", f"${format_money(prod.carton_price)}"],
            ["Pieces per carton", prod.pcs_per_carton],
            ["In stock", f"{prod.stock} pcs"],
        ]
        md_table_str = generate_markdown_table(["Attribute", "Value"], table_rows, ["l", "l"])
        await self.query_one(MarkdownViewer).document.update(
            f"### {prod.name}\n\n" + md_table_str
        )

        self.query_one("#label-retail", Label).update(
            f"Pieces (${format_money(prod.price)} each)"
        )
        self.query_one("#label-carton", Label).update(
            f"Cartons of {prod.pcs_per_carton} (${format_money(prod.carton_price)} each)"
        )

        max_cartons = prod.stock // prod.pcs_per_carton
        self.query_one("#input-retail-qty").validators = [
            Number(minimum=1, maximum=max(prod.stock, 1))
        ]
        self.query_one("#input-carton-qty").validators = [
            Number(minimum=1, maximum=max(max_cartons, 1))
        ]
        if prod.stock < 1:
            self._disable("#btn-addcart-retail", "Out of Stock")
        if max_cartons < 1:
            self._disable("#btn-addcart-carton", "Not enough for a carton")

        self.query_one("#input-retail-qty").focus()

    def _disable(self, button_id: str, label: str) -> None:
        btn = self.query_one(button_id, Button)
        btn.label = label
        btn.disabled = True
        btn.variant = "warning"

    def _qty(self, input_id: str) -> int:
        value = self.query_one(input_id, Input).value
        return int(value) if value.isdigit() else 0

    def _step(self, input_id: str, delta: int) -> None:
        inp = self.query_one(input_id, Input)
        inp.value = str(max(1, self._qty(input_id) + delta))

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-sub-retail")
    def handle_sub_retail(self):
        self._step("#input-retail-qty", -1)

    @on(Button.Pressed, "#btn-add-retail")
    def handle_add_retail(self):
        self._step("#input-retail-qty", 1)

    @on(Button.Pressed, "#btn-sub-carton")
    def handle_sub_carton(self):
        self._step("#input-carton-qty", -1)

    @on(Button.Pressed, "#btn-add-carton")
    def handle_add_carton(self):
        self._step("#input-carton-qty", 1)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart-retail")
    def handle_addcart_retail(self):
        self.add_to_cart(self._qty("#input-retail-qty"), False)

    @on(Button.Pressed, "#btn-addcart-carton")
    def handle_addcart_carton(self):
        self.add_to_cart(self._qty("#input-carton-qty"), True)

    @work(exclusive=True)
    async def add_to_cart(self, quantity: int, is_carton: bool) -> None:
        try:
            view = await add_item(
                self.app.db, self._cart_id, self._product_id, quantity, is_carton
            )
        except PosError as e:
            self.notify(str(e), severity="error")
            return

        unit = "carton(s)" if is_carton else "piece(s)"
        self.app.notify(
            f"Added {quantity} {unit} of {self._prod.name}. Cart total ${view.total}."
        )
        self.dismiss(True)
