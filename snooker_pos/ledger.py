"""Append-mostly ledger of finalized bills stored under one key."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace

from snooker_pos.config import LEDGER_KEY
from snooker_pos.errors import InvalidArgument, NotFound, StorageFailure
from snooker_pos.models import BillRecord, LedgerSummary, PaymentStatus
from snooker_pos.store import KeyValueStore

logger = logging.getLogger(__name__)


class LedgerStore:
    """Bill records serialized as one JSON array in a key-value store."""

    def __init__(self, store: KeyValueStore, key: str = LEDGER_KEY) -> None:
        self.store = store
        self.key = key
        self._lock = threading.RLock()

    def _load(self) -> list[BillRecord]:
        raw = self.store.get(self.key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError(f"expected a list, got {type(payload).__name__}")
            return [BillRecord.from_dict(entry) for entry in payload]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("ledger decode failed key=%s error=%r", self.key, exc)
            raise StorageFailure(f"Ledger under {self.key!r} is corrupt: {exc}") from exc

    def _save(self, bills: list[BillRecord]) -> None:
        self.store.set(self.key, json.dumps([bill.to_dict() for bill in bills], ensure_ascii=False))

    def append(self, bill: BillRecord) -> BillRecord:
        """Persist a new bill and return it."""
        with self._lock:
            bills = self._load()
            if any(existing.id == bill.id for existing in bills):
                raise InvalidArgument(f"Bill {bill.id} already exists")
            bills.append(bill)
            self._save(bills)
        logger.info("bill_appended id=%s table=%s amount=%s", bill.id, bill.table_number, bill.amount)
        return bill

    def list_all(self) -> list[BillRecord]:
        """Return every stored bill in append order."""
        with self._lock:
            return self._load()

    def get(self, bill_id: str) -> BillRecord:
        for bill in self.list_all():
            if bill.id == bill_id:
                return bill
        raise NotFound(f"No bill with id {bill_id!r}")

    def update_payment_status(self, bill_id: str, status: PaymentStatus | str) -> BillRecord:
        """Set the payment status of one bill; setting the current status again is a no-op."""
        new_status = PaymentStatus.parse(status)
        with self._lock:
            bills = self._load()
            for idx, bill in enumerate(bills):
                if bill.id != bill_id:
                    continue
                if bill.payment_status is new_status:
                    return bill
                updated = replace(bill, payment_status=new_status)
                bills[idx] = updated
                self._save(bills)
                logger.info("bill_payment_status id=%s status=%s", bill_id, new_status.value)
                return updated
        raise NotFound(f"No bill with id {bill_id!r}")

    def delete(self, bill_id: str) -> None:
        """Remove one bill."""
        with self._lock:
            bills = self._load()
            remaining = [bill for bill in bills if bill.id != bill_id]
            if len(remaining) == len(bills):
                raise NotFound(f"No bill with id {bill_id!r}")
            self._save(remaining)
        logger.info("bill_deleted id=%s", bill_id)

    def clear(self) -> None:
        """Wipe every bill. Administrative use only."""
        with self._lock:
            self.store.delete(self.key)
        logger.warning("ledger_cleared key=%s", self.key)

    def summary(self) -> LedgerSummary:
        """Revenue and play-time aggregates over all bills."""
        bills = self.list_all()
        return LedgerSummary(
            total_revenue=sum(bill.amount for bill in bills),
            paid_amount=sum(bill.amount for bill in bills if bill.payment_status is PaymentStatus.PAID),
            unpaid_amount=sum(bill.amount for bill in bills if bill.payment_status is PaymentStatus.UNPAID),
            total_sessions=len(bills),
            total_play_minutes=sum(bill.duration_minutes for bill in bills),
        )
