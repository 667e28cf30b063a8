"""Turns an ended table session into a stored bill."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import uuid4

from snooker_pos.charges import items_total
from snooker_pos.errors import InvalidArgument, InvalidState
from snooker_pos.ledger import LedgerStore
from snooker_pos.models import BillRecord, Customer, PaymentStatus, SessionStatus, TableSession, utc_now
from snooker_pos.registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillPreview:
    """Totals shown before the bill is confirmed."""

    table_charge: int
    items_total: int
    amount: int
    duration_minutes: int


class BillingAssembler:
    """Finalizes ended sessions: append the bill to the ledger, then reset the table."""

    def __init__(
        self,
        registry: SessionRegistry,
        ledger: LedgerStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.registry = registry
        self.ledger = ledger
        self.clock = clock or utc_now

    @staticmethod
    def preview(session: TableSession) -> BillPreview:
        total = items_total(session.items)
        return BillPreview(
            table_charge=session.table_charge,
            items_total=total,
            amount=session.table_charge + total,
            duration_minutes=session.elapsed_minutes,
        )

    def finalize(
        self,
        session: TableSession,
        customer: Customer,
        payment_status: PaymentStatus | str = PaymentStatus.UNPAID,
    ) -> BillRecord:
        """
        Store the bill for ``session`` and free the table.

        The table is only reset after the ledger accepted the bill; if the
        append raises, the session stays ``Ended`` so the bill can be retried.
        Concurrent calls for the same session store exactly one bill; the others raise ``InvalidState``.
        """
        name = (customer.name or "").strip()
        if not name:
            raise InvalidArgument("customer name is required")
        phone = (customer.phone or "").strip() or None
        status = PaymentStatus.parse(payment_status)

        if session.status is not SessionStatus.ENDED:
            raise InvalidState(f"Table {session.table_number} is {session.status.value}, not ended")

        def record(current: TableSession) -> BillRecord:
            preview = self.preview(current)
            bill = BillRecord(
                id=uuid4().hex,
                customer_name=name,
                phone=phone,
                table_number=current.table_number,
                duration_minutes=preview.duration_minutes,
                items=tuple(current.items),
                amount=preview.amount,
                payment_status=status,
                created_at=self.clock().isoformat(),
            )
            return self.ledger.append(bill)

        bill, _ = self.registry.close_out(session.table_number, session.session_id, record)
        logger.info(
            "bill_finalized id=%s table=%s session=%s amount=%s status=%s",
            bill.id,
            bill.table_number,
            session.session_id,
            bill.amount,
            bill.payment_status.value,
        )
        return bill
