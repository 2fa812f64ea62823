from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from db.database import Database
from utils.logger import get_logger
from utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from utils.state import GlobalState
from views.scr_analytics import AnalyticsScreen
from views.scr_cart_detail import CartDetailScreen
from views.scr_cart_list import CartListScreen
from views.scr_catalog import CatalogScreen
from views.scr_login import LoginScreen
from views.scr_product_mgmt import ProductManagementScreen
from views.scr_transactions import TransactionHistoryScreen

_logger = get_logger(__name__)


class PosApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "carts": CartListScreen,
        "catalog": CatalogScreen,
        "cart_detail": CartDetailScreen,
        "transactions": TransactionHistoryScreen,
        "analytics": AnalyticsScreen,
        "products": ProductManagementScreen,
    }

    EMPLOYEE_MODES = {
        "carts": "Active Carts",
        "catalog": "Product Catalog",
        "cart_detail": "Current Cart",
        "transactions": "Transaction History",
    }
    ADMIN_MODES = {"analytics": "Analytics", "products": "Product Management"}

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/carts.tcss",
        "styles/catalog.tcss",
        "styles/transactions.tcss",
        "styles/admin.tcss",
    ]

    state: GlobalState
    db: Database

    def __init__(self, db: Database | None = None):
        super().__init__()
        self.state = GlobalState()
        self.db = db if db is not None else Database()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.db.start()
        self.main_flow()

    async def on_unmount(self) -> None:
        await self.db.close()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    async def open_mode(self, mode: str) -> None:
        """switch_mode plus the ModeSwitchedMessage screens listen to"""
        self.post_message(ModeSwitchedMessage(self.current_mode, mode))
        await self.switch_mode(mode)

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        _logger.info("User logged out.")
        self.state.logout()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        self.state.logout()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        if self.state.role == "employee":
            await self.open_mode("carts")
        elif self.state.role == "admin":
            await self.open_mode("analytics")


def run() -> None:
    PosApp().run()


if __name__ == "__main__":
    run()
