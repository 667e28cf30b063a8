"""Per-table session state machine and tick driver."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Protocol, TypeVar
from uuid import uuid4

from snooker_pos.charges import occupied_table_charge
from snooker_pos.config import BLOCK_MINUTES, BLOCK_RATE, TABLE_COUNT, TICK_SECONDS
from snooker_pos.errors import InvalidArgument, InvalidState
from snooker_pos.events import SessionEvents, SessionListener
from snooker_pos.models import CatalogItem, ItemLine, SessionStatus, TableSession, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimerHandle(Protocol):
    def stop(self) -> None: ...


# Same shape as textual's ``App.set_interval(interval, callback)``.
Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


class RepeatingTimer(threading.Thread):
    """Daemon thread calling ``callback`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        super().__init__(name="snooker-pos-tick", daemon=True)
        self.interval = interval
        self.callback = callback
        self._stopped = threading.Event()

    def run(self) -> None:
        next_at = time.monotonic() + self.interval
        while not self._stopped.wait(max(0.0, next_at - time.monotonic())):
            self.callback()
            next_at += self.interval

    def stop(self) -> None:
        self._stopped.set()


def threaded_scheduler(interval: float, callback: Callable[[], None]) -> RepeatingTimer:
    timer = RepeatingTimer(interval, callback)
    timer.start()
    return timer


@dataclass
class _Slot:
    session: TableSession
    lock: threading.RLock
    ticker: TimerHandle | None = None
    tick_token: object | None = None


class SessionRegistry:
    """
    Owns one ``TableSession`` per table slot ``1..table_count``.

    Mutations of a slot are serialized by that slot's lock; different slots
    never block each other. Every successful mutation publishes the new
    snapshot to subscribers while that lock is still held, so each table's
    listeners see its snapshots in mutation order. Listeners may read the
    registry; mutating a different table from a listener can deadlock.
    """

    def __init__(
        self,
        table_count: int = TABLE_COUNT,
        rate: int = BLOCK_RATE,
        block_minutes: int = BLOCK_MINUTES,
        tick_seconds: float = TICK_SECONDS,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] | None = None,
        events: SessionEvents | None = None,
    ) -> None:
        if table_count < 1:
            raise InvalidArgument(f"table_count must be >= 1, got {table_count}")
        if rate < 0:
            raise InvalidArgument(f"rate must be >= 0, got {rate}")
        if block_minutes < 1:
            raise InvalidArgument(f"block_minutes must be >= 1, got {block_minutes}")
        if tick_seconds <= 0:
            raise InvalidArgument(f"tick_seconds must be > 0, got {tick_seconds}")

        self.rate = rate
        self.block_minutes = block_minutes
        self.tick_seconds = tick_seconds
        self.scheduler: Scheduler = scheduler or threaded_scheduler
        self.clock = clock or utc_now
        self.events = events or SessionEvents()
        self._slots: dict[int, _Slot] = {
            number: _Slot(session=self._fresh_session(number), lock=threading.RLock())
            for number in range(1, table_count + 1)
        }

    @property
    def table_count(self) -> int:
        return len(self._slots)

    @property
    def table_numbers(self) -> list[int]:
        return list(self._slots)

    def _slot(self, table_number: int) -> _Slot:
        if isinstance(table_number, bool) or not isinstance(table_number, int):
            raise InvalidArgument(f"table number must be an int, got {table_number!r}")
        slot = self._slots.get(table_number)
        if slot is None:
            raise InvalidArgument(f"table number must be between 1 and {self.table_count}, got {table_number}")
        return slot

    @staticmethod
    def _fresh_session(table_number: int) -> TableSession:
        return TableSession(table_number=table_number, session_id=uuid4().hex)

    def _charge(self, elapsed_minutes: int) -> int:
        return occupied_table_charge(elapsed_minutes, rate=self.rate, block_minutes=self.block_minutes)

    @staticmethod
    def _cancel_ticker(slot: _Slot) -> None:
        if slot.ticker is not None:
            slot.ticker.stop()
        slot.ticker = None
        slot.tick_token = None

    def get(self, table_number: int) -> TableSession:
        """Current snapshot for one table."""
        slot = self._slot(table_number)
        with slot.lock:
            return slot.session

    def sessions(self) -> list[TableSession]:
        return [self.get(number) for number in self._slots]

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot after every mutation; returns the unsubscribe handle."""
        return self.events.subscribe(listener)

    def start(self, table_number: int) -> TableSession:
        """
        Put a table into play and start its one-second tick.

        Starting an ``Ended`` table resumes the same occupancy. Starting an
        ``Active`` table replaces its ticker so only one ever runs.
        """
        slot = self._slot(table_number)
        with slot.lock:
            current = slot.session
            was_active = current.status is SessionStatus.ACTIVE
            self._cancel_ticker(slot)
            session = replace(
                current,
                status=SessionStatus.ACTIVE,
                started_at=current.started_at or self.clock(),
                ended_at=None,
                table_charge=self._charge(current.elapsed_minutes),
            )
            slot.session = session
            token = object()
            slot.tick_token = token
            slot.ticker = self.scheduler(self.tick_seconds, lambda: self._tick(table_number, token))
            if was_active:
                logger.warning("table_restart table=%s session=%s ticker replaced", table_number, session.session_id)
            else:
                logger.info("table_start table=%s session=%s", table_number, session.session_id)
            self.events.publish(session)
        return session

    def _tick(self, table_number: int, token: object) -> None:
        slot = self._slots[table_number]
        with slot.lock:
            current = slot.session
            if slot.tick_token is not token or current.status is not SessionStatus.ACTIVE:
                return
            seconds = current.elapsed_seconds + 1
            session = replace(current, elapsed_seconds=seconds, table_charge=self._charge(seconds // 60))
            slot.session = session
            logger.debug("table_tick table=%s seconds=%s charge=%s", table_number, seconds, session.table_charge)
            self.events.publish(session)

    def stop(self, table_number: int) -> TableSession:
        """Halt the tick and freeze time and charge until the bill is confirmed."""
        slot = self._slot(table_number)
        with slot.lock:
            current = slot.session
            if current.status is not SessionStatus.ACTIVE:
                raise InvalidState(f"Table {table_number} is {current.status.value}, not active")
            self._cancel_ticker(slot)
            session = replace(current, status=SessionStatus.ENDED, ended_at=self.clock())
            slot.session = session
            logger.info(
                "table_stop table=%s session=%s seconds=%s charge=%s",
                table_number,
                session.session_id,
                session.elapsed_seconds,
                session.table_charge,
            )
            self.events.publish(session)
        return session

    def add_item(self, table_number: int, item: CatalogItem) -> TableSession:
        """Add one unit of ``item``; a repeated item bumps its quantity."""
        if not item.item_id:
            raise InvalidArgument("item id is required")
        if item.price < 0:
            raise InvalidArgument(f"item price must be >= 0, got {item.price}")

        slot = self._slot(table_number)
        with slot.lock:
            current = slot.session
            if current.item(item.item_id) is None:
                items = current.items + (ItemLine(item_id=item.item_id, name=item.name, unit_price=item.price),)
            else:
                items = tuple(
                    replace(line, quantity=line.quantity + 1) if line.item_id == item.item_id else line
                    for line in current.items
                )
            session = replace(current, items=items)
            slot.session = session
            logger.info("item_added table=%s item=%s status=%s", table_number, item.item_id, session.status.value)
            self.events.publish(session)
        return session

    def reset(self, table_number: int) -> TableSession:
        """Discard the occupancy and return the table to a fresh idle session."""
        slot = self._slot(table_number)
        with slot.lock:
            session = self._reset_slot(slot, table_number, "table_reset")
        return session

    def close_out(
        self,
        table_number: int,
        session_id: str,
        record: Callable[[TableSession], T],
    ) -> tuple[T, TableSession]:
        """
        Hand the ended session ``session_id`` to ``record``, then reset the table.

        The check, ``record`` and the reset all run under the table's lock, so
        no start, item or second close-out can slip in between. If ``record``
        raises, the table keeps its ended session.
        """
        slot = self._slot(table_number)
        with slot.lock:
            current = slot.session
            if current.session_id != session_id or current.status is not SessionStatus.ENDED:
                raise InvalidState(f"Session {session_id} is no longer the ended session of table {table_number}")
            result = record(current)
            session = self._reset_slot(slot, table_number, "table_closed")
        return result, session

    def _reset_slot(self, slot: _Slot, table_number: int, event: str) -> TableSession:
        previous = slot.session
        self._cancel_ticker(slot)
        session = self._fresh_session(table_number)
        slot.session = session
        logger.info(
            "%s table=%s old_session=%s new_session=%s", event, table_number, previous.session_id, session.session_id
        )
        self.events.publish(session)
        return session

    def shutdown(self) -> None:
        """Stop every ticker without changing any session, and wait for tick threads to exit."""
        stopped: list[TimerHandle] = []
        for slot in self._slots.values():
            with slot.lock:
                if slot.ticker is not None:
                    stopped.append(slot.ticker)
                self._cancel_ticker(slot)
        current = threading.current_thread()
        for ticker in stopped:
            if isinstance(ticker, threading.Thread) and ticker is not current:
                ticker.join(timeout=self.tick_seconds + 1.0)
