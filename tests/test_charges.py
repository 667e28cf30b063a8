"""Tests for snooker_pos charges module."""

from __future__ import annotations

import pytest

from snooker_pos.charges import compute_table_charge, items_total, occupied_table_charge
from snooker_pos.config import BLOCK_RATE
from snooker_pos.errors import InvalidArgument
from snooker_pos.models import ItemLine


class TestComputeTableCharge:
    """Tests for the block-rate rule."""

    @pytest.mark.parametrize(
        "minutes,expected",
        [
            (0, 0),
            (1, BLOCK_RATE),
            (15, BLOCK_RATE),
            (16, 2 * BLOCK_RATE),
            (30, 2 * BLOCK_RATE),
            (31, 3 * BLOCK_RATE),
            (60, 4 * BLOCK_RATE),
        ],
    )
    def test_reference_values(self, minutes, expected):
        """Test every started block of 15 minutes costs one rate."""
        assert compute_table_charge(minutes) == expected

    def test_non_decreasing_and_multiple_of_rate(self):
        """Test charge never drops as minutes grow and is always whole blocks."""
        previous = 0
        for minutes in range(0, 300):
            charge = compute_table_charge(minutes)
            assert charge >= previous
            assert charge % BLOCK_RATE == 0
            previous = charge

    def test_custom_rate_and_block(self):
        """Test rate and block length are parameters, not literals."""
        assert compute_table_charge(21, rate=100, block_minutes=20) == 200
        assert compute_table_charge(20, rate=100, block_minutes=20) == 100

    def test_negative_minutes_rejected(self):
        """Test negative elapsed time is a caller error."""
        with pytest.raises(InvalidArgument):
            compute_table_charge(-1)

    def test_zero_block_rejected(self):
        """Test a zero-length block is rejected."""
        with pytest.raises(InvalidArgument):
            compute_table_charge(5, block_minutes=0)


class TestOccupiedTableCharge:
    """Tests for the minimum charge of an occupied table."""

    def test_first_block_due_immediately(self):
        """Test zero minutes of play still cost one block."""
        assert occupied_table_charge(0) == BLOCK_RATE

    def test_matches_block_rule_after_first_minute(self):
        """Test occupied charge equals the block rule once a minute has passed."""
        for minutes in (1, 14, 15, 16, 45, 46):
            assert occupied_table_charge(minutes) == compute_table_charge(minutes)


class TestItemsTotal:
    def test_sums_price_times_quantity(self):
        items = [ItemLine("a", "A", 25, 2), ItemLine("b", "B", 15, 1)]
        assert items_total(items) == 65

    def test_empty(self):
        assert items_total([]) == 0
