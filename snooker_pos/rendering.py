"""Rendering helpers for table cards and the bill dashboard."""

from __future__ import annotations

from rich.text import Text

from snooker_pos.charges import items_total
from snooker_pos.config import CURRENCY_SYMBOL
from snooker_pos.models import BillRecord, LedgerSummary, PaymentStatus, SessionStatus, TableSession

STATUS_LABELS: dict[SessionStatus, str] = {
    SessionStatus.IDLE: "Available",
    SessionStatus.ACTIVE: "Playing",
    SessionStatus.ENDED: "Session Ended",
}


def format_clock(total_seconds: int) -> str:
    """Format seconds as ``M:SS``, or ``H:MM:SS`` from the first hour on."""
    hours, rest = divmod(max(0, total_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_duration(total_minutes: int) -> str:
    """Format minutes as ``45m`` or ``1h 5m``."""
    hours, minutes = divmod(max(0, total_minutes), 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_amount(amount: int) -> str:
    return f"{CURRENCY_SYMBOL}{amount}"


def status_badge_style(status: SessionStatus) -> str:
    """Return a consistent badge style for session states."""
    if status is SessionStatus.ACTIVE:
        return "bold #0b1f0f on #5fbf72"
    if status is SessionStatus.ENDED:
        return "bold #1f1600 on #e0b341"
    return "bold #ffffff on #4a4f5a"


def payment_badge_style(status: PaymentStatus) -> str:
    if status is PaymentStatus.PAID:
        return "bold #ffffff on #2e8b57"
    return "bold #ffffff on #b23a48"


def format_session_card(session: TableSession, selected: bool = False) -> Text:
    """Render one table's live state: badge, clock, charge, items and total."""
    text = Text()
    text.append("➤ " if selected else "  ")
    text.append(f"Table {session.table_number} ", style="bold")
    text.append(f" {STATUS_LABELS[session.status]} ", style=status_badge_style(session.status))
    text.append("\n\n")
    text.append(f"  {format_clock(session.elapsed_seconds)}", style="bold #7CFC00")
    text.append(f"\n  Table: {format_amount(session.table_charge)}")

    if session.items:
        text.append("\n  Items:")
        for line in session.items:
            text.append(f"\n    {line.name} x{line.quantity}  {format_amount(line.line_total)}", style="white")

    total = session.table_charge + items_total(session.items)
    text.append("\n  Total: ")
    text.append(format_amount(total), style="bold")
    return text


def format_bill_row(bill: BillRecord, selected: bool = False) -> Text:
    """Render one ledger row for the dashboard list."""
    text = Text()
    text.append("➤ " if selected else "  ")
    text.append(f"T{bill.table_number} ", style="bold")
    text.append(f"{bill.customer_name}")
    if bill.phone:
        text.append(f" ({bill.phone})", style="dim")
    text.append(f"  {format_duration(bill.duration_minutes)}  {format_amount(bill.amount)}  ")
    text.append(f" {bill.payment_status.value.upper()} ", style=payment_badge_style(bill.payment_status))
    return text


def format_summary(summary: LedgerSummary) -> Text:
    """Render the dashboard aggregate line."""
    text = Text()
    text.append(f"Revenue {format_amount(summary.total_revenue)}", style="bold")
    text.append(f"   Paid {format_amount(summary.paid_amount)}", style="#5fbf72")
    text.append(f"   Unpaid {format_amount(summary.unpaid_amount)}", style="#ff8080")
    text.append(f"   Sessions {summary.total_sessions}")
    text.append(f"   Play time {format_duration(summary.total_play_minutes)}")
    return text


def format_filter_tabs(bills: list[BillRecord], active: PaymentStatus | None) -> Text:
    """Render the ``All (n)  Unpaid (n)  Paid (n)`` tabs, highlighting ``active``."""
    tabs = [
        (None, f"All ({len(bills)})"),
        (PaymentStatus.UNPAID, f"Unpaid ({sum(bill.payment_status is PaymentStatus.UNPAID for bill in bills)})"),
        (PaymentStatus.PAID, f"Paid ({sum(bill.payment_status is PaymentStatus.PAID for bill in bills)})"),
    ]
    text = Text()
    for idx, (status, label) in enumerate(tabs):
        if idx > 0:
            text.append("  ")
        text.append(f" {label} ", style="bold reverse" if status is active else "dim")
    return text
