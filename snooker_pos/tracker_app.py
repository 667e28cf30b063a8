"""Main Textual app class."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from snooker_pos.billing import BillingAssembler
from snooker_pos.config import Settings
from snooker_pos.dashboard_screen import DashboardScreen
from snooker_pos.data import QUICK_ITEM_KEYS, QUICK_ITEMS_BY_ID, quick_item_for_key
from snooker_pos.errors import SnookerPosError
from snooker_pos.ledger import LedgerStore
from snooker_pos.models import BillRecord, SessionStatus, TableSession
from snooker_pos.printer import check_printer_dependencies, print_bill
from snooker_pos.registry import SessionRegistry
from snooker_pos.rendering import format_amount, format_session_card
from snooker_pos.session_end_modal import SessionEndModal, SessionEndResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TableTrackerApp(App):
    """A Textual app tracking play time, items and bills for each table."""

    TITLE = "Snooker POS"
    SUB_TITLE = "Table sessions"

    CSS = """
    Screen {
        layout: vertical;
    }

    #tables-layout {
        height: 1fr;
    }

    .table-card {
        width: 1fr;
        border: round $primary;
        padding: 1;
    }

    .table-card.selected {
        border: heavy $secondary;
    }

    #status-bar {
        border: heavy $secondary;
        padding: 0 1;
        height: 4;
    }
    """

    selected_table = reactive(1)

    BINDINGS = [
        ("s", "start_table", "Start"),
        ("x", "stop_table", "Stop"),
        ("e", "end_dialog", "Bill"),
        ("r", "reset_table", "Reset"),
        ("b", "open_dashboard", "Dashboard"),
        Binding("ctrl+q", "quit", "Quit", priority=True),
    ]

    def __init__(self, settings: Settings, ledger: LedgerStore, check_printer: bool = True) -> None:
        super().__init__()
        self.settings = settings
        self.ledger = ledger
        self.registry = SessionRegistry(
            table_count=settings.table_count,
            rate=settings.block_rate,
            block_minutes=settings.block_minutes,
            tick_seconds=settings.tick_seconds,
            scheduler=self.set_interval,
        )
        self.assembler = BillingAssembler(self.registry, self.ledger)
        self.check_printer = check_printer
        self.printer_ready = False
        self.system_status = ""
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="tables-layout"):
            for number in self.registry.table_numbers:
                yield Static(id=f"table-{number}", classes="table-card")
        with Vertical():
            yield Static(id="status-bar")

    def on_mount(self) -> None:
        if self.check_printer:
            self.printer_ready, msg = check_printer_dependencies()
            self.system_status = msg
            logger.info("printer_status ready=%s msg=%r", self.printer_ready, msg)
        self._unsubscribe = self.registry.subscribe(self._on_session_changed)
        self._refresh_all()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
        self.registry.shutdown()

    def on_key(self, event: Key) -> None:
        if self._blocked_by_screen():
            return
        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        key = event.character.lower()
        if key.isdigit() and int(key) in self.registry.table_numbers:
            self.selected_table = int(key)
            self._refresh_all()
            event.stop()
            return

        if key in QUICK_ITEM_KEYS:
            self._add_quick_item(key)
            event.stop()

    def _blocked_by_screen(self) -> bool:
        return self.screen is not self.screen_stack[0]

    def _run(self, description: str, operation: Callable[[], T]) -> T | None:
        try:
            return operation()
        except SnookerPosError as exc:
            logger.warning("%s failed table=%s error=%r", description, self.selected_table, exc)
            self._set_status(f"{description} failed: {exc}")
            return None

    def action_start_table(self) -> None:
        if self._blocked_by_screen():
            return
        table = self.selected_table
        if self._run("Start", lambda: self.registry.start(table)) is not None:
            self._set_status(f"Table {table} started. Timer is running.")

    def action_stop_table(self) -> None:
        if self._blocked_by_screen():
            return
        table = self.selected_table
        session = self._run("Stop", lambda: self.registry.stop(table))
        if session is None:
            return
        self._set_status(f"Table {table} ended. Enter customer details to save the bill.")
        self._open_end_dialog(session)

    def action_end_dialog(self) -> None:
        if self._blocked_by_screen():
            return
        session = self.registry.get(self.selected_table)
        if session.status is not SessionStatus.ENDED:
            self._set_status(f"Table {session.table_number} has no ended session to bill.")
            return
        self._open_end_dialog(session)

    def action_reset_table(self) -> None:
        if self._blocked_by_screen():
            return
        table = self.selected_table
        if self._run("Reset", lambda: self.registry.reset(table)) is not None:
            self._set_status(f"Table {table} reset.")

    def action_open_dashboard(self) -> None:
        if self._blocked_by_screen():
            return
        self.push_screen(DashboardScreen(self.ledger, on_print=self._print_bill))

    def _add_quick_item(self, key: str) -> None:
        item = quick_item_for_key(key)
        if item is None:
            return
        table = self.selected_table
        if self._run("Add item", lambda: self.registry.add_item(table, item)) is not None:
            self._set_status(f"{item.name} added: {format_amount(item.price)} on table {table}.")

    def _open_end_dialog(self, session: TableSession) -> None:
        preview = self.assembler.preview(session)

        def on_result(result: SessionEndResult | None) -> None:
            if result is None:
                self._set_status(f"Table {session.table_number} still awaiting its bill (E to reopen, R to discard).")
                return
            customer, payment_status = result
            bill = self._run("Save bill", lambda: self.assembler.finalize(session, customer, payment_status))
            if bill is not None:
                self._set_status(
                    f"Saved {customer.name}'s bill for table {session.table_number}: {format_amount(bill.amount)}"
                )

        self.push_screen(SessionEndModal(session, preview), on_result)

    def _print_bill(self, bill: BillRecord) -> None:
        if not self.printer_ready:
            self._set_status("Printer not ready.")
            return
        try:
            print_bill(bill)
        except Exception as exc:
            logger.error("print_failed bill=%s error=%r", bill.id, exc)
            self._set_status(f"Print failed: {exc}")
            return
        self._set_status(f"Printed bill for {bill.customer_name}.")

    def _on_session_changed(self, session: TableSession) -> None:
        self._refresh_table(session)

    def _set_status(self, message: str) -> None:
        self.system_status = message
        self._refresh_status()

    def _refresh_all(self) -> None:
        for session in self.registry.sessions():
            self._refresh_table(session)
        self._refresh_status()

    def _refresh_table(self, session: TableSession) -> None:
        try:
            card = self.query_one(f"#table-{session.table_number}", Static)
        except NoMatches:
            return
        selected = session.table_number == self.selected_table
        card.set_class(selected, "selected")
        card.update(format_session_card(session, selected=selected))

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        shortcuts = "  ".join(
            f"{key.upper()} {QUICK_ITEMS_BY_ID[item_id].name}" for key, item_id in QUICK_ITEM_KEYS.items()
        )
        tables = f"1-{self.registry.table_count}"
        status = self.system_status or "Ready"
        bar.update(f"{tables} select  S start  X stop  E bill  R reset  B dashboard  {shortcuts}\n{status}")
