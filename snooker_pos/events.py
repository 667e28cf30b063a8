"""Synchronous change notification for table sessions."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from snooker_pos.models import TableSession

logger = logging.getLogger(__name__)

SessionListener = Callable[[TableSession], None]


class SessionEvents:
    """
    Ordered fan-out of session snapshots to subscribers.

    Delivery walks a copy of the subscriber list, so callbacks may subscribe or
    unsubscribe while a publish is in progress. A listener removed mid-publish is
    not called again; one added mid-publish first hears the next publish. A
    callback that raises is logged and skipped.
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[object, SessionListener]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` and return a handle that removes it."""
        token = object()
        with self._lock:
            self._listeners.append((token, listener))

        def unsubscribe() -> None:
            with self._lock:
                self._listeners = [entry for entry in self._listeners if entry[0] is not token]

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _is_subscribed(self, token: object) -> bool:
        with self._lock:
            return any(entry[0] is token for entry in self._listeners)

    def publish(self, session: TableSession) -> None:
        with self._lock:
            listeners = tuple(self._listeners)
        for token, listener in listeners:
            if not self._is_subscribed(token):
                # Removed by an earlier callback of this same publish.
                continue
            try:
                listener(session)
            except Exception:
                logger.exception("session listener %r failed for table %s", listener, session.table_number)
