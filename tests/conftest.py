"""Pytest fixtures for snooker_pos tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from snooker_pos.billing import BillingAssembler
from snooker_pos.ledger import LedgerStore
from snooker_pos.models import CatalogItem
from snooker_pos.registry import SessionRegistry
from snooker_pos.store import MemoryKeyValueStore


class ManualTimer:
    """Timer handle whose ticks are fired by the test."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class ManualScheduler:
    """Drop-in for ``App.set_interval`` that records timers instead of running them."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def running(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if not timer.stopped]

    def tick(self, count: int = 1) -> None:
        """Fire every running timer ``count`` times."""
        for _ in range(count):
            for timer in self.running:
                timer.callback()


class FrozenClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def registry(scheduler, clock):
    reg = SessionRegistry(scheduler=scheduler, clock=clock)
    yield reg
    reg.shutdown()


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def ledger(kv_store):
    return LedgerStore(kv_store)


@pytest.fixture
def assembler(registry, ledger, clock):
    return BillingAssembler(registry, ledger, clock=clock)


@pytest.fixture
def cold_drink():
    return CatalogItem("cold-drink", "Cold Drink", 25)


@pytest.fixture
def cigarette():
    return CatalogItem("cigarette", "Cigarette", 15)
