"""
Unit tests for the models module.
"""

import pytest
from datetime import datetime
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import default_board_data
from core_logic import TimeRange
from models import (
    TimelineItem, SubPhaseMarker, Viewport, item_from_dict, marker_from_dict, blackout_from_dict,
)


class TestViewport:
    """Tests for the Viewport window."""

    def test_end_is_inclusive(self):
        viewport = Viewport(datetime(2025, 1, 1), 35)
        assert viewport.end == datetime(2025, 2, 4)

    def test_weeks_mode_snaps_to_monday(self):
        viewport = Viewport(datetime(2025, 1, 9), 28, 'weeks')  # Thursday
        assert viewport.start == datetime(2025, 1, 6)

    def test_days_mode_keeps_start(self):
        viewport = Viewport(datetime(2025, 1, 9), 28, 'days')
        assert viewport.start == datetime(2025, 1, 9)

    def test_unknown_mode_raises_error(self):
        with pytest.raises(ValueError):
            Viewport(datetime(2025, 1, 6), 28, 'months')

    def test_empty_viewport_raises_error(self):
        with pytest.raises(ValueError):
            Viewport(datetime(2025, 1, 6), 0)

    def test_shifted_returns_new_viewport(self):
        viewport = Viewport(datetime(2025, 1, 6), 28)
        moved = viewport.shifted(3)
        assert moved.start == datetime(2025, 1, 9)
        assert viewport.start == datetime(2025, 1, 6)

    def test_with_mode(self):
        viewport = Viewport(datetime(2025, 1, 8), 28).with_mode('weeks')
        assert viewport == Viewport(datetime(2025, 1, 6), 28, 'weeks')


class TestEntities:
    """Tests for TimelineItem and SubPhaseMarker."""

    def test_continuous_item_runs_to_viewport_end(self):
        item = TimelineItem("p-1", "Support", "ops", TimeRange("06-01-2025", "06-01-2025"), continuous=True)
        viewport = Viewport(datetime(2025, 1, 6), 35)
        assert item.effective_range(viewport) == TimeRange("06-01-2025", "09-02-2025")

    def test_continuous_item_starting_after_viewport(self):
        item = TimelineItem("p-1", "Support", "ops", TimeRange("01-03-2025", "01-03-2025"), continuous=True)
        viewport = Viewport(datetime(2025, 1, 6), 35)
        assert item.effective_range(viewport).start == datetime(2025, 3, 1)
        assert item.effective_range(viewport).end == datetime(2025, 3, 1)

    def test_fixed_item_ignores_viewport(self):
        rng = TimeRange("07-01-2025", "15-01-2025")
        item = TimelineItem("p-1", "Relaunch", "design", rng)
        assert item.effective_range(Viewport(datetime(2025, 1, 6), 3)) == rng

    def test_marker_range_is_single_day(self):
        marker = SubPhaseMarker("m-1", "p-1", "14-01-2025")
        assert marker.time_range == TimeRange("14-01-2025", "14-01-2025")

    def test_marker_rejects_unknown_boundary_kind(self):
        with pytest.raises(ValueError):
            SubPhaseMarker("m-1", "p-1", "14-01-2025", boundary_kind='middle')


class TestLoaders:
    """Tests for building entities from the default board data."""

    def test_default_board_loads(self):
        items = [item_from_dict(d) for d in default_board_data['items']]
        markers = [marker_from_dict(d) for d in default_board_data['markers']]
        blackouts = [blackout_from_dict(d) for d in default_board_data['blackouts']]
        assert len(items) == 4
        assert sum(1 for m in markers if m.is_first) == 1
        assert sum(1 for m in markers if m.is_last) == 1
        assert blackouts[0].title == "Company Offsite"

    def test_item_without_end_uses_start(self):
        item = item_from_dict({"id": "p-9", "start": "06-01-2025", "end": None, "continuous": True})
        assert item.time_range == TimeRange("06-01-2025", "06-01-2025")
        assert item.continuous
        assert item.name == "p-9"
