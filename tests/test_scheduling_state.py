"""
Unit tests for the scheduling_state module.

Tests cover:
- WeekOverrideStore: explicit get/set/clear of per-week overrides
- SchedulingState: single active gesture, viewport changes, applying commits
- Checking and saving blackout periods without overlaps
"""

import pytest
from datetime import datetime
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core_logic import TimeRange
from errors import LOCKED_BOUNDARY, NO_ROOM
from gesture import (
    PointerDown, PointerMove, PointerUp, Cancel, Commit, Reject, ConfirmationRequired, VisualUpdate, MOVE,
    confirm_suggestion,
)
from models import TimelineItem, SubPhaseMarker, BlackoutPeriod, Viewport
from scheduling_state import SchedulingState, WeekOverrideStore


def jan(start_day, end_day):
    return TimeRange(datetime(2025, 1, start_day), datetime(2025, 1, end_day))


class TestWeekOverrideStore:
    """Tests for WeekOverrideStore."""

    def test_any_day_maps_to_its_week(self):
        store = WeekOverrideStore()
        store.add(datetime(2025, 1, 8), {"id": "o-1", "hours": 30})  # Wednesday
        assert store.get(datetime(2025, 1, 12)) == [{"id": "o-1", "hours": 30}]  # Sunday
        assert store.weeks() == [datetime(2025, 1, 6)]

    def test_get_returns_copies(self):
        store = WeekOverrideStore()
        store.add(datetime(2025, 1, 6), {"id": "o-1", "hours": 30})
        store.get(datetime(2025, 1, 6))[0]["hours"] = 0
        assert store.get(datetime(2025, 1, 6))[0]["hours"] == 30

    def test_add_requires_id(self):
        with pytest.raises(ValueError):
            WeekOverrideStore().add(datetime(2025, 1, 6), {"hours": 30})

    def test_update(self):
        store = WeekOverrideStore()
        store.add(datetime(2025, 1, 6), {"id": "o-1", "hours": 30})
        assert store.update(datetime(2025, 1, 7), "o-1", {"hours": 20})
        assert not store.update(datetime(2025, 1, 7), "o-2", {"hours": 20})
        assert store.get(datetime(2025, 1, 6)) == [{"id": "o-1", "hours": 20}]

    def test_remove_last_override_drops_week(self):
        store = WeekOverrideStore()
        store.add(datetime(2025, 1, 6), {"id": "o-1"})
        store.remove(datetime(2025, 1, 6), "o-1")
        assert store.weeks() == []

    def test_set_empty_clears_week(self):
        store = WeekOverrideStore()
        store.set(datetime(2025, 1, 6), [{"id": "o-1"}, {"id": "o-2"}])
        assert len(store.get(datetime(2025, 1, 6))) == 2
        store.set(datetime(2025, 1, 6), [])
        assert store.get(datetime(2025, 1, 6)) == []

    def test_clear_and_clear_all(self):
        store = WeekOverrideStore()
        store.add(datetime(2025, 1, 6), {"id": "o-1"})
        store.add(datetime(2025, 1, 13), {"id": "o-2"})
        store.clear(datetime(2025, 1, 6))
        assert store.weeks() == [datetime(2025, 1, 13)]
        store.clear_all()
        assert store.weeks() == []

    def test_each_state_owns_its_store(self):
        viewport = Viewport(datetime(2025, 1, 1), 35)
        first, second = SchedulingState(viewport), SchedulingState(viewport)
        first.week_overrides.add(datetime(2025, 1, 6), {"id": "o-1"})
        assert second.week_overrides.weeks() == []


class TestSchedulingState:
    """Tests for SchedulingState."""

    def setup_method(self):
        self.item = TimelineItem("a", "Alpha", "row-1", jan(1, 5))
        self.parent = TimelineItem("p", "Beta Launch", "row-2", jan(1, 20))
        self.first = SubPhaseMarker("m1", "p", datetime(2025, 1, 1), 'start', is_first=True)
        self.middle = SubPhaseMarker("m2", "p", datetime(2025, 1, 8))
        self.blackout = BlackoutPeriod("h1", jan(11, 13), "Offsite")
        self.state = SchedulingState(
            Viewport(datetime(2025, 1, 1), 35), [self.item, self.parent],
            [self.first, self.middle], [self.blackout],
        )

    def test_full_drag_commits(self):
        assert self.state.dispatch(PointerDown(self.item, 'item', MOVE, 10, 0)) == []
        assert self.state.is_dragging
        self.state.dispatch(PointerMove(114, 50))
        effects = self.state.dispatch(PointerUp(114, 400))
        assert not self.state.is_dragging
        commits = [e for e in effects if isinstance(e, Commit)]
        assert commits == [Commit("a", 'item', jan(3, 7), False)]
        for commit in commits:
            self.state.apply_commit(commit)
        assert self.item.time_range == jan(3, 7)

    def test_second_pointer_down_is_ignored(self):
        self.state.dispatch(PointerDown(self.item, 'item', MOVE, 10, 0))
        assert self.state.dispatch(PointerDown(self.parent, 'item', MOVE, 10, 10)) == []
        assert self.state.gesture.subject is self.item

    def test_rejected_pointer_down_stays_idle(self):
        effects = self.state.dispatch(PointerDown(self.first, 'marker', MOVE, 10, 0))
        assert not self.state.is_dragging
        assert isinstance(effects[0], Reject)
        assert effects[0].code == LOCKED_BOUNDARY

    def test_cancel_ends_gesture(self):
        self.state.dispatch(PointerDown(self.item, 'item', MOVE, 10, 0))
        self.state.dispatch(PointerMove(300, 50))
        effects = self.state.dispatch(Cancel())
        assert not self.state.is_dragging
        assert effects[0] == VisualUpdate("a", 'item', jan(1, 5), ())
        assert self.item.time_range == jan(1, 5)

    def test_scroll_during_drag_keeps_bar_under_pointer(self):
        self.state.dispatch(PointerDown(self.item, 'item', MOVE, 10, 0))
        self.state.scroll(3)
        effects = self.state.dispatch(PointerMove(10, 50))
        assert effects[0].visual_range == jan(4, 8)

    def test_dispatch_passes_bounds_for_auto_scroll(self):
        self.state.dispatch(PointerDown(self.item, 'item', MOVE, 10, 0), viewport_bounds_px=(0, 1820))
        effects = self.state.dispatch(PointerMove(20, 50), viewport_bounds_px=(0, 1820))
        assert effects[-1].direction == 'left'

    def test_set_mode_snaps_weeks_to_monday(self):
        viewport = self.state.set_mode('weeks', 84)
        assert viewport.start == datetime(2024, 12, 30)
        assert viewport.day_count == 84
        assert self.state.viewport is viewport

    def test_apply_marker_commit(self):
        self.state.apply_commit(Commit("m2", 'marker', jan(12, 12), False))
        assert self.middle.boundary_date == datetime(2025, 1, 12)

    def test_apply_blackout_commit(self):
        self.state.apply_commit(Commit("h1", 'blackout', jan(14, 15), True))
        assert self.blackout.time_range == jan(14, 15)

    def test_apply_commit_for_missing_entity_raises_error(self):
        with pytest.raises(ValueError):
            self.state.apply_commit(Commit("zz", 'item', jan(1, 2), False))

    def test_find_unknown_kind_raises_error(self):
        with pytest.raises(ValueError):
            self.state.find('note', 'a')

    def test_save_and_remove_blackout(self):
        saved = self.state.save_blackout("h2", "Stocktake", jan(20, 21))
        assert self.state.find('blackout', 'h2') is saved
        self.state.remove_blackout('h1')
        assert [b.id for b in self.state.blackouts] == ['h2']

    def test_save_existing_blackout_updates_it(self):
        self.state.save_blackout("h1", "Team Offsite", jan(12, 14))
        assert self.blackout.title == "Team Offsite"
        assert self.blackout.time_range == jan(12, 14)
        assert len(self.state.blackouts) == 1

    def test_save_overlapping_blackout_raises_error(self):
        with pytest.raises(ValueError):
            self.state.save_blackout("h2", "Training", jan(10, 12))
        assert [b.id for b in self.state.blackouts] == ['h1']


class TestCheckBlackout:
    """Tests for checking a new or edited blackout before it is saved."""

    def setup_method(self):
        self.state = SchedulingState(
            Viewport(datetime(2025, 1, 1), 35), blackouts=[BlackoutPeriod("h1", jan(11, 13), "Offsite")],
        )

    def test_free_range_is_a_plain_commit(self):
        assert self.state.check_blackout("h2", jan(1, 3)) == Commit("h2", 'blackout', jan(1, 3), False)

    def test_touching_range_is_allowed(self):
        assert self.state.check_blackout("h2", jan(14, 15)).final_range == jan(14, 15)

    def test_overlap_needs_confirmation(self):
        """Jan 10-12 against Jan 11-13 is offered as Jan 10, and nothing is saved yet."""
        effect = self.state.check_blackout("h2", jan(10, 12))
        assert isinstance(effect, ConfirmationRequired)
        assert effect.suggested_range == jan(10, 10)
        assert "Offsite" in effect.explanation
        assert [b.id for b in self.state.blackouts] == ['h1']

    def test_confirmed_suggestion_can_be_saved(self):
        commit = confirm_suggestion(self.state.check_blackout("h2", jan(10, 12)))
        self.state.save_blackout(commit.id, "Training", commit.final_range)
        assert self.state.find('blackout', 'h2').time_range == jan(10, 10)

    def test_edit_ignores_its_own_range(self):
        effect = self.state.check_blackout("h1", jan(12, 15))
        assert effect == Commit("h1", 'blackout', jan(12, 15), False)

    def test_fully_covered_range_is_rejected(self):
        self.state.save_blackout("h2", "Stocktake", jan(14, 18))
        effect = self.state.check_blackout("h3", jan(12, 16))
        assert isinstance(effect, Reject)
        assert effect.code == NO_ROOM
