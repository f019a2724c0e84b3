"""
Unit tests for the calendar_grid module.

Tests cover:
- Week-column geometry (six 22px days and one 21px day)
- day_offset / day_index_at in both display modes
- build_columns
"""

import pytest
from datetime import datetime
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calendar_grid import (
    week_day_widths, column_width, day_width, day_offset, day_index_at,
    column_count, grid_width, build_columns,
)
from models import Viewport


class TestWeekGeometry:
    """Tests for the fixed week-column layout."""

    def test_week_widths_sum_to_column_width(self):
        assert sum(week_day_widths()) == 153 == column_width('weeks')

    @pytest.mark.parametrize("week_index", range(9))
    def test_every_week_is_153px(self, week_index):
        """Day widths inside any week add up to 153px."""
        first_day = week_index * 7
        total = sum(day_width('weeks', first_day + i) for i in range(7))
        assert total == 153
        assert day_offset('weeks', first_day + 7) - day_offset('weeks', first_day) == 153

    def test_seventh_day_is_narrow(self):
        assert day_width('weeks', 6) == 21
        assert day_width('weeks', 13) == 21

    def test_offsets_do_not_drift(self):
        """Week 10 starts at 10 * 153, not at 70 * 22."""
        assert day_offset('weeks', 70) == 1530

    def test_day_within_second_week(self):
        assert day_offset('weeks', 8) == 153 + 22


class TestDayIndexAt:
    """Tests for pixel-to-day-index conversion."""

    def test_days_mode_floors(self):
        assert day_index_at('days', 0) == 0
        assert day_index_at('days', 51.9) == 0
        assert day_index_at('days', 52) == 1

    def test_weeks_mode_last_day_of_week(self):
        """x=150 sits in the 21px seventh day of week 0, not in week 1."""
        assert day_index_at('weeks', 150) == 6

    def test_weeks_mode_week_boundary(self):
        assert day_index_at('weeks', 152) == 6
        assert day_index_at('weeks', 153) == 7

    def test_weeks_mode_inside_day(self):
        assert day_index_at('weeks', 43) == 1
        assert day_index_at('weeks', 44) == 2

    def test_negative_pixels_give_negative_index(self):
        assert day_index_at('days', -1) == -1
        assert day_index_at('weeks', -1) == -1

    @pytest.mark.parametrize("mode", ['days', 'weeks'])
    def test_offset_round_trip(self, mode):
        for day_index in range(0, 50):
            assert day_index_at(mode, day_offset(mode, day_index)) == day_index


class TestColumns:
    """Tests for column_count, grid_width and build_columns."""

    def test_days_mode_one_column_per_day(self):
        viewport = Viewport(datetime(2025, 1, 1), 35, 'days')
        assert column_count(viewport) == 35
        assert grid_width(viewport) == 35 * 52

    def test_weeks_mode_partial_week_gets_a_column(self):
        viewport = Viewport(datetime(2025, 1, 6), 10, 'weeks')
        assert column_count(viewport) == 2
        assert grid_width(viewport) == 306

    def test_build_columns_weeks(self):
        viewport = Viewport(datetime(2025, 1, 8), 21, 'weeks')
        columns = list(build_columns(viewport))
        assert [c.date for c in columns] == [datetime(2025, 1, 6), datetime(2025, 1, 13), datetime(2025, 1, 20)]
        assert [c.pixel_offset for c in columns] == [0, 153, 306]
        assert all(c.pixel_width == 153 for c in columns)

    def test_build_columns_can_be_walked_twice(self):
        viewport = Viewport(datetime(2025, 1, 1), 5, 'days')
        assert list(build_columns(viewport)) == list(build_columns(viewport))
        assert [c.index for c in build_columns(viewport)] == [0, 1, 2, 3, 4]
