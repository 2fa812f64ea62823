from textual import on
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import MarkdownViewer

from db.analytics import dashboard_markdown
from utils.messages import ModeSwitchedMessage
from views.base_screen import BaseScreen


class AnalyticsScreen(BaseScreen):
    """
    Admin dashboard: summary cards, daily sales, category share, monthly revenue.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-analytics", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_reload(self) -> None:
        self.query_one("#md-analytics", MarkdownViewer).document.update(dashboard_markdown())
