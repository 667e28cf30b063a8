"""Tests for snooker_pos billing module."""

from __future__ import annotations

import threading
import time

import pytest

from snooker_pos.billing import BillingAssembler
from snooker_pos.config import BLOCK_RATE
from snooker_pos.errors import InvalidArgument, InvalidState, StorageFailure
from snooker_pos.ledger import LedgerStore
from snooker_pos.models import CatalogItem, Customer, PaymentStatus, SessionStatus
from snooker_pos.store import MemoryKeyValueStore


class BrokenStore(MemoryKeyValueStore):
    def set(self, key, value):
        raise StorageFailure("read-only filesystem")


class SlowStore(MemoryKeyValueStore):
    """Store whose writes take a while and can run a hook mid-write."""

    def __init__(self, delay=0.2, on_set=None):
        super().__init__()
        self.delay = delay
        self.on_set = on_set

    def set(self, key, value):
        if self.on_set is not None:
            self.on_set()
        time.sleep(self.delay)
        super().set(key, value)


def _ended_session(registry, scheduler, cold_drink, cigarette, table=2, seconds=14 * 60):
    registry.start(table)
    scheduler.tick(seconds)
    registry.add_item(table, cold_drink)
    registry.add_item(table, cold_drink)
    registry.add_item(table, cigarette)
    return registry.stop(table)


class TestPreview:
    def test_preview_totals(self, assembler, registry, scheduler, cold_drink, cigarette):
        session = _ended_session(registry, scheduler, cold_drink, cigarette)
        preview = assembler.preview(session)

        assert preview.table_charge == BLOCK_RATE
        assert preview.items_total == 65
        assert preview.amount == 135
        assert preview.duration_minutes == 14


class TestFinalize:
    """Tests for turning an ended session into a bill."""

    def test_amount_is_charge_plus_items(self, assembler, registry, scheduler, cold_drink, cigarette):
        """Test 70 table charge plus 2x25 and 1x15 items bills 135."""
        session = _ended_session(registry, scheduler, cold_drink, cigarette)

        bill = assembler.finalize(session, Customer("Asha", "98765"))

        assert bill.amount == 135
        assert bill.duration_minutes == 14
        assert bill.table_number == 2
        assert bill.customer_name == "Asha"
        assert bill.phone == "98765"
        assert bill.payment_status is PaymentStatus.UNPAID
        assert [(line.item_id, line.quantity) for line in bill.items] == [("cold-drink", 2), ("cigarette", 1)]

    def test_bill_appended_to_ledger(self, assembler, ledger, registry, scheduler, cold_drink, cigarette, clock):
        session = _ended_session(registry, scheduler, cold_drink, cigarette)

        bill = assembler.finalize(session, Customer("Asha"), PaymentStatus.PAID)

        assert ledger.list_all() == [bill]
        assert bill.payment_status is PaymentStatus.PAID
        assert bill.created_at == clock.now.isoformat()

    def test_table_reset_after_finalize(self, assembler, registry, scheduler, cold_drink, cigarette):
        """Test the table is idle with a new session id once the bill is stored."""
        session = _ended_session(registry, scheduler, cold_drink, cigarette)

        assembler.finalize(session, Customer("Asha"))

        current = registry.get(2)
        assert current.status is SessionStatus.IDLE
        assert current.elapsed_seconds == 0
        assert current.items == ()
        assert current.session_id != session.session_id

    def test_bill_matches_live_charge_for_short_session(self, assembler, registry, scheduler):
        """Test a session under one minute bills the same first block shown while playing."""
        registry.start(1)
        scheduler.tick(20)
        shown = registry.get(1).table_charge
        session = registry.stop(1)

        bill = assembler.finalize(session, Customer("Ravi"))

        assert bill.amount == shown == BLOCK_RATE
        assert bill.duration_minutes == 0

    def test_bill_ids_unique(self, assembler, registry, scheduler):
        ids = set()
        for _ in range(5):
            registry.start(1)
            scheduler.tick(1)
            ids.add(assembler.finalize(registry.stop(1), Customer("Ravi")).id)
        assert len(ids) == 5

    def test_items_snapshot_not_live(self, assembler, registry, scheduler, cold_drink, cigarette):
        session = _ended_session(registry, scheduler, cold_drink, cigarette)
        bill = assembler.finalize(session, Customer("Asha"))

        registry.add_item(2, cold_drink)

        assert bill.items[0].quantity == 2

    def test_name_and_phone_trimmed(self, assembler, registry, scheduler):
        registry.start(1)
        bill = assembler.finalize(registry.stop(1), Customer("  Asha  ", "   "))
        assert bill.customer_name == "Asha"
        assert bill.phone is None

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, assembler, ledger, registry, scheduler, name):
        registry.start(1)
        session = registry.stop(1)

        with pytest.raises(InvalidArgument):
            assembler.finalize(session, Customer(name))

        assert ledger.list_all() == []
        assert registry.get(1).status is SessionStatus.ENDED

    def test_active_session_rejected(self, assembler, registry):
        session = registry.start(1)
        with pytest.raises(InvalidState):
            assembler.finalize(session, Customer("Asha"))

    def test_idle_session_rejected(self, assembler, registry):
        with pytest.raises(InvalidState):
            assembler.finalize(registry.get(1), Customer("Asha"))

    def test_stale_snapshot_rejected(self, assembler, ledger, registry):
        """Test finalizing the same ended snapshot twice stores one bill."""
        registry.start(1)
        session = registry.stop(1)
        assembler.finalize(session, Customer("Asha"))

        with pytest.raises(InvalidState):
            assembler.finalize(session, Customer("Asha"))

        assert len(ledger.list_all()) == 1

    def test_restarted_session_rejected(self, assembler, registry):
        registry.start(1)
        session = registry.stop(1)
        registry.start(1)
        with pytest.raises(InvalidState):
            assembler.finalize(session, Customer("Asha"))

    def test_storage_failure_keeps_session(self, registry, scheduler, cold_drink, cigarette, clock):
        """Test a failed append leaves the ended session in place for a retry."""
        assembler = BillingAssembler(registry, LedgerStore(BrokenStore()), clock=clock)
        session = _ended_session(registry, scheduler, cold_drink, cigarette)

        with pytest.raises(StorageFailure):
            assembler.finalize(session, Customer("Asha"))

        assert registry.get(2) == session

    def test_retry_after_storage_failure(self, registry, scheduler, cold_drink, cigarette, clock):
        store = BrokenStore()
        assembler = BillingAssembler(registry, LedgerStore(store), clock=clock)
        session = _ended_session(registry, scheduler, cold_drink, cigarette)
        with pytest.raises(StorageFailure):
            assembler.finalize(session, Customer("Asha"))

        assembler.ledger = LedgerStore(MemoryKeyValueStore())
        bill = assembler.finalize(session, Customer("Asha"))

        assert bill.amount == 135
        assert registry.get(2).status is SessionStatus.IDLE

    def test_unknown_payment_status_rejected(self, assembler, ledger, registry):
        registry.start(1)
        session = registry.stop(1)

        with pytest.raises(InvalidArgument):
            assembler.finalize(session, Customer("Asha"), "refunded")

        assert ledger.list_all() == []
        assert registry.get(1) == session


class TestConcurrentFinalize:
    """Tests for finalize racing other callers on the same table."""

    def test_two_threads_store_one_bill(self, registry, clock):
        ledger = LedgerStore(SlowStore())
        assembler = BillingAssembler(registry, ledger, clock=clock)
        registry.start(1)
        session = registry.stop(1)
        bills, errors = [], []

        def finalize():
            try:
                bills.append(assembler.finalize(session, Customer("Asha")))
            except InvalidState as exc:
                errors.append(exc)

        threads = [threading.Thread(target=finalize) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(5.0)

        assert len(bills) == 1
        assert len(errors) == 1
        assert ledger.list_all() == bills
        assert registry.get(1).status is SessionStatus.IDLE

    def test_item_added_during_append_is_not_lost(self, registry, clock):
        """Test an item arriving while the bill is written lands on the bill or stays on the table."""
        snacks = CatalogItem("snacks", "Snacks", 30)
        adders = []

        def add_snacks():
            adder = threading.Thread(target=registry.add_item, args=(1, snacks))
            adders.append(adder)
            adder.start()

        ledger = LedgerStore(SlowStore(delay=0.1, on_set=add_snacks))
        assembler = BillingAssembler(registry, ledger, clock=clock)
        registry.start(1)
        session = registry.stop(1)

        bill = assembler.finalize(session, Customer("Asha"))
        for adder in adders:
            adder.join(5.0)

        on_bill = [line.item_id for line in bill.items]
        on_table = [line.item_id for line in registry.get(1).items]
        assert on_bill + on_table == ["snacks"]
