"""Error types raised by the table tracker core."""

from __future__ import annotations


class SnookerPosError(Exception):
    """Base class for every error the core raises on purpose."""


class InvalidArgument(SnookerPosError, ValueError):
    """A caller passed a bad table number, empty required field or similar."""


class InvalidState(SnookerPosError, RuntimeError):
    """The operation is not allowed in the table's current session state."""


class StorageFailure(SnookerPosError, OSError):
    """The key-value store could not be read or written."""


class NotFound(SnookerPosError, KeyError):
    """A bill lookup by id matched nothing."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message instead.
        return str(self.args[0]) if self.args else ""
