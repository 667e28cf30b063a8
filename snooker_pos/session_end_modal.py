"""Session end modal: customer details and payment status before saving the bill."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from snooker_pos.billing import BillPreview
from snooker_pos.models import Customer, PaymentStatus, TableSession
from snooker_pos.rendering import format_amount, format_duration

SessionEndResult = tuple[Customer, PaymentStatus]


class SessionEndModal(ModalScreen[SessionEndResult | None]):
    """Prompt for customer name, phone and payment status for an ended table."""

    CSS = """
    SessionEndModal {
        align: center middle;
        background: $background 60%;
    }

    #session-end-dialog {
        width: 60;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #session-end-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #session-end-summary {
        color: white;
        margin-bottom: 1;
    }

    #session-end-fields {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #session-end-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #session-end-help {
        color: #dddddd;
    }
    """

    _FIELDS = ("name", "phone", "payment")
    _PHONE_MAX_LEN = 15

    def __init__(self, session: TableSession, preview: BillPreview) -> None:
        super().__init__()
        self.session = session
        self.preview = preview
        self.name_value = ""
        self.phone_value = ""
        self.payment_status = PaymentStatus.UNPAID
        self.field_index = 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="session-end-dialog"):
            yield Static(f"Session Complete - Table {self.session.table_number}", id="session-end-title")
            yield Static(id="session-end-summary")
            yield Static(id="session-end-fields")
            yield Static(id="session-end-error")
            yield Static(
                "Tab/↑/↓ switch field. Space toggles payment. Enter save. Esc cancel.",
                id="session-end-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    @property
    def current_field(self) -> str:
        return self._FIELDS[self.field_index]

    def on_key(self, event: Key) -> None:
        if event.key == "escape":
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key in {"tab", "down"}:
            self.field_index = (self.field_index + 1) % len(self._FIELDS)
            self._refresh_content()
            event.stop()
            return

        if event.key in {"shift+tab", "up"}:
            self.field_index = (self.field_index - 1) % len(self._FIELDS)
            self._refresh_content()
            event.stop()
            return

        if self.current_field == "payment":
            if event.key == "space":
                self.payment_status = (
                    PaymentStatus.UNPAID if self.payment_status is PaymentStatus.PAID else PaymentStatus.PAID
                )
                self._refresh_content()
            event.stop()
            return

        if event.key == "backspace":
            if self.current_field == "name":
                self.name_value = self.name_value[:-1]
            else:
                self.phone_value = self.phone_value[:-1]
            self.error = ""
            self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            if self.current_field == "name":
                self.name_value += event.character
            elif event.character.isdigit() or event.character in "+- ":
                if len(self.phone_value) < self._PHONE_MAX_LEN:
                    self.phone_value += event.character
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        name = self.name_value.strip()
        if not name:
            self.error = "Customer name is required."
            self.field_index = 0
            self._refresh_content()
            return
        self.dismiss((Customer(name=name, phone=self.phone_value.strip() or None), self.payment_status))

    def _refresh_content(self) -> None:
        summary = self.query_one("#session-end-summary", Static)
        fields = self.query_one("#session-end-fields", Static)
        error_widget = self.query_one("#session-end-error", Static)

        text = Text(style="white")
        text.append(f"Duration: {format_duration(self.preview.duration_minutes)}")
        text.append(f"   Table: {format_amount(self.preview.table_charge)}")
        for line in self.session.items:
            text.append(f"\n  {line.name} x{line.quantity}  {format_amount(line.line_total)}")
        text.append("\nTotal: ")
        text.append(format_amount(self.preview.amount), style="bold")
        summary.update(text)

        rows = Text(style="white")
        values = {
            "name": f"Name: {self.name_value}",
            "phone": f"Phone: {self.phone_value}",
            "payment": f"Payment: [{self.payment_status.value.upper()}]",
        }
        for idx, field_name in enumerate(self._FIELDS):
            if idx > 0:
                rows.append("\n")
            is_current = idx == self.field_index
            pointer = "➤ " if is_current else "  "
            cursor = "|" if is_current and field_name != "payment" else ""
            rows.append(f"{pointer}{values[field_name]}{cursor}", style="bold white" if is_current else "white")
        fields.update(rows)
        error_widget.update(self.error or "")
