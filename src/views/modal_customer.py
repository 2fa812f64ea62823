from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label

from db.crud import open_cart
from db.errors import PosError


class CustomerModal(ModalScreen[int | None]):
    """
    Collects the walk-in customer's details and opens a new cart for them.
    Returns the new cart id, or None if cancelled.
    """

    def __init__(self, employee_id: int) -> None:
        super().__init__()
        self._employee_id = employee_id

    def compose(self) -> ComposeResult:
        with Vertical(id="div-customer"):
            yield Label("New Cart", id="label-customer-title")
            yield Label("Customer Name")
            yield Input(placeholder="Jane Doe", id="input-customer-name")
            yield Label("Phone Number")
            yield Input(placeholder="555-0100", id="input-customer-phone")
            yield Checkbox("Wholesale customer", id="chk-wholesale")
            with Horizontal():
                yield Button("Cancel", id="btn-quit")
                yield Button("Create Cart", id="btn-submit", variant="primary")

    def on_mount(self):
        self.query_one("#input-customer-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        name_input = self.query_one("#input-customer-name", Input)
        phone_input = self.query_one("#input-customer-phone", Input)
        for inp in (name_input, phone_input):
            if not inp.value.strip():
                inp.focus()
                inp.add_class("-invalid")
                self.notify("Name and phone number are required.", severity="error")
                return

        try:
            view = await open_cart(
                self.app.db,
                self._employee_id,
                name_input.value,
                phone_input.value,
                self.query_one("#chk-wholesale", Checkbox).value,
            )
        except PosError as e:
            self.notify(str(e), severity="error")
            return

        self.notify(f"New cart created for {view.customer.name}.")
        self.dismiss(view.id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
