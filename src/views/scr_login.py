from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from utils.logger import get_logger
from utils.messages import UserLoginMessage
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Employee login, plus a demo admin login on the second tab.
    Dismisses once app.state holds a role.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Employee", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Employee ID")
                    yield Input(placeholder="EMP001", id="input-login-employee")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Admin", id="tab-admin"):
                with Vertical(id="div-admin"):
                    yield Label("Username")
                    yield Input(placeholder="admin", id="input-admin-user")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-admin-pwd"
                    )
                    with Horizontal(id="div-admin-btns"):
                        yield Button("Login as Admin", id="btn-admin", variant="primary")
                    yield Label("Demo credentials: admin / admin123", id="label-hint")

    def on_mount(self):
        self.query_one("#input-login-employee").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-admin-pwd"):
            self.handle_admin_submit()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        employee_id = self.query_one("#input-login-employee", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value.strip()

        if not employee_id or not pwd:
            self.notify("Employee ID or password cannot be empty!", severity="error")
            return

        if await self.app.state.login_employee(self.app.db, employee_id, pwd):
            employee = self.app.state.employee
            _logger.info(f"Employee {employee.employee_id} logged in.")
            self.notify(f"Welcome, {employee.name}!")
            self.app.post_message(UserLoginMessage())
            self.dismiss()
        else:
            self._reject("#input-login-pwd")

    @on(Button.Pressed, "#btn-admin")
    def handle_admin_submit(self) -> None:
        username = self.query_one("#input-admin-user", Input).value.strip()
        pwd = self.query_one("#input-admin-pwd", Input).value.strip()

        if self.app.state.login_admin(username, pwd):
            _logger.info("Admin logged in.")
            self.notify("Admin login successful.")
            self.app.post_message(UserLoginMessage())
            self.dismiss()
        else:
            self._reject("#input-admin-pwd")

    def _reject(self, pwd_input_id: str) -> None:
        self.notify("Invalid credentials.", severity="error")
        input_pwd = self.query_one(pwd_input_id, Input)
        input_pwd.value = ""
        input_pwd.focus()
        input_pwd.add_class("-invalid")

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
