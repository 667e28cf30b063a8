"""Block-rate table charge computation."""

from __future__ import annotations

from typing import Iterable

from snooker_pos.config import BLOCK_MINUTES, BLOCK_RATE
from snooker_pos.errors import InvalidArgument
from snooker_pos.models import ItemLine


def compute_table_charge(elapsed_minutes: int, rate: int = BLOCK_RATE, block_minutes: int = BLOCK_MINUTES) -> int:
    """
    Charge for ``elapsed_minutes`` of play.

    Every started block of ``block_minutes`` costs ``rate``; zero minutes cost nothing.
    """
    if elapsed_minutes < 0:
        raise InvalidArgument(f"elapsed_minutes must be >= 0, got {elapsed_minutes}")
    if block_minutes < 1:
        raise InvalidArgument(f"block_minutes must be >= 1, got {block_minutes}")
    if elapsed_minutes == 0:
        return 0
    blocks = -(-elapsed_minutes // block_minutes)
    return blocks * rate


def occupied_table_charge(elapsed_minutes: int, rate: int = BLOCK_RATE, block_minutes: int = BLOCK_MINUTES) -> int:
    """Charge for an occupied table: the first block is due as soon as play starts."""
    return max(rate, compute_table_charge(elapsed_minutes, rate=rate, block_minutes=block_minutes))


def items_total(items: Iterable[ItemLine]) -> int:
    """Sum of unit price times quantity over purchased items."""
    return sum(line.unit_price * line.quantity for line in items)
