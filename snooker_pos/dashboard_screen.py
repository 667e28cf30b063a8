"""Dashboard screen: ledger totals and payment tracking."""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from snooker_pos.errors import SnookerPosError
from snooker_pos.ledger import LedgerStore
from snooker_pos.models import BillRecord, PaymentStatus
from snooker_pos.rendering import format_bill_row, format_filter_tabs, format_summary

FILTER_CYCLE: tuple[PaymentStatus | None, ...] = (None, PaymentStatus.UNPAID, PaymentStatus.PAID)


class DashboardScreen(ModalScreen[None]):
    """Bill list, newest first, with mark-paid / mark-unpaid / print actions."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("up", "move_cursor(-1)", "Previous"),
        ("p", "set_status('paid')", "Mark paid"),
        ("u", "set_status('unpaid')", "Mark unpaid"),
        ("ctrl+p", "print_selected", "Print"),
        ("f", "cycle_filter", "Filter"),
    ]

    CSS = """
    DashboardScreen {
        align: center middle;
        background: $background 60%;
    }

    #dashboard-dialog {
        width: 90%;
        height: 80%;
        border: round $primary;
        background: $panel;
        padding: 1 2;
    }

    #dashboard-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #dashboard-summary {
        margin-bottom: 1;
    }

    #dashboard-bills {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #dashboard-status {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)
    filter_status: reactive[PaymentStatus | None] = reactive(None)

    def __init__(self, ledger: LedgerStore, on_print: Callable[[BillRecord], None] | None = None) -> None:
        super().__init__()
        self.ledger = ledger
        self.on_print = on_print
        self.all_bills: list[BillRecord] = []
        self.bills: list[BillRecord] = []
        self.status_message = ""

    def compose(self) -> ComposeResult:
        with Container(id="dashboard-dialog"):
            yield Static("Dashboard", id="dashboard-title")
            yield Static(id="dashboard-summary")
            yield Static(id="dashboard-filters")
            yield Static(id="dashboard-bills")
            yield Static(id="dashboard-status")

    def on_mount(self) -> None:
        self._reload()

    def action_close(self) -> None:
        self.dismiss()

    def action_move_cursor(self, delta: int) -> None:
        if not self.bills:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.bills)
        self._refresh_content()

    def action_set_status(self, status: str) -> None:
        bill = self._selected_bill()
        if bill is None:
            return
        try:
            updated = self.ledger.update_payment_status(bill.id, status)
        except SnookerPosError as exc:
            self.status_message = f"Update failed: {exc}"
        else:
            self.status_message = f"{updated.customer_name}: {updated.payment_status.value}"
        self._reload()

    def action_cycle_filter(self) -> None:
        """Switch between all, unpaid and paid bills."""
        position = FILTER_CYCLE.index(self.filter_status)
        self.filter_status = FILTER_CYCLE[(position + 1) % len(FILTER_CYCLE)]
        self.cursor_index = 0
        self._reload()

    def action_print_selected(self) -> None:
        bill = self._selected_bill()
        if bill is None or self.on_print is None:
            return
        self.on_print(bill)

    def _selected_bill(self) -> BillRecord | None:
        if not (0 <= self.cursor_index < len(self.bills)):
            return None
        return self.bills[self.cursor_index]

    def _reload(self) -> None:
        try:
            self.all_bills = sorted(self.ledger.list_all(), key=lambda bill: bill.created_at, reverse=True)
        except SnookerPosError as exc:
            self.all_bills = []
            self.status_message = f"Cannot load bills: {exc}"
        self.bills = [
            bill for bill in self.all_bills if self.filter_status is None or bill.payment_status is self.filter_status
        ]
        if self.cursor_index >= len(self.bills):
            self.cursor_index = max(0, len(self.bills) - 1)
        self._refresh_content()

    def _refresh_content(self) -> None:
        summary_widget = self.query_one("#dashboard-summary", Static)
        filters_widget = self.query_one("#dashboard-filters", Static)
        bills_widget = self.query_one("#dashboard-bills", Static)
        status_widget = self.query_one("#dashboard-status", Static)

        try:
            summary_widget.update(format_summary(self.ledger.summary()))
        except SnookerPosError as exc:
            summary_widget.update(f"Summary unavailable: {exc}")

        filters_widget.update(format_filter_tabs(self.all_bills, self.filter_status))
        if not self.all_bills:
            bills_widget.update("(no bills yet)")
        elif not self.bills:
            bills_widget.update(f"(no {self.filter_status.value} bills)")
        else:
            lines = Text()
            for idx, bill in enumerate(self.bills):
                if idx > 0:
                    lines.append("\n")
                lines.append_text(format_bill_row(bill, selected=idx == self.cursor_index))
            bills_widget.update(lines)

        help_text = "J/K move, F filter, P paid, U unpaid, Ctrl+P print, Esc close"
        status_widget.update(f"{help_text}\n{self.status_message}" if self.status_message else help_text)
