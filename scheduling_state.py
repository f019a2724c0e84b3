import logging

from config import MIN_GAP_DAYS
from core_logic import week_start_for
from collision import detect_blackout_conflicts, suggest_blackout_placement
from gesture import GestureContext, PointerDown, Commit, Reject, ConfirmationRequired, ACTIVE, step, state_of
from models import Viewport, BlackoutPeriod

LOGGER = logging.getLogger(__name__)


class WeekOverrideStore:
    """Per-week overrides keyed by the Monday of the week.

    Each override is a dict with an 'id'. The store belongs to one
    SchedulingState and is handed to whoever needs it.
    """

    def __init__(self):
        self._overrides = {}

    @staticmethod
    def week_key(value):
        return week_start_for(value)

    def get(self, week):
        return [dict(o) for o in self._overrides.get(self.week_key(week), [])]

    def set(self, week, overrides):
        overrides = [dict(o) for o in overrides]
        if overrides:
            self._overrides[self.week_key(week)] = overrides
        else:
            self._overrides.pop(self.week_key(week), None)

    def add(self, week, override):
        if 'id' not in override:
            raise ValueError("Week override needs an 'id'.")
        self._overrides.setdefault(self.week_key(week), []).append(dict(override))

    def update(self, week, override_id, changes):
        for override in self._overrides.get(self.week_key(week), []):
            if override['id'] == override_id:
                override.update(changes)
                return True
        return False

    def remove(self, week, override_id):
        key = self.week_key(week)
        remaining = [o for o in self._overrides.get(key, []) if o['id'] != override_id]
        self.set(key, remaining)

    def clear(self, week):
        self._overrides.pop(self.week_key(week), None)

    def clear_all(self):
        self._overrides.clear()

    def weeks(self):
        return sorted(self._overrides)


class SchedulingState:
    """Owns the viewport, the board snapshot and the single active gesture.

    Pointer events go through dispatch(); a pointer-down arriving while a
    gesture is active is ignored. Committed ranges are written back with
    apply_commit(), which stands in for the persistence layer.
    """

    def __init__(self, viewport, items=(), markers=(), blackouts=(), min_gap_days=MIN_GAP_DAYS, week_overrides=None):
        self.viewport = viewport
        self.items = list(items)
        self.markers = list(markers)
        self.blackouts = list(blackouts)
        self.min_gap_days = min_gap_days
        self.week_overrides = week_overrides if week_overrides is not None else WeekOverrideStore()
        self.gesture = None

    @property
    def is_dragging(self):
        return self.gesture is not None

    def context(self, viewport_bounds_px=None):
        return GestureContext(
            self.viewport, self.items, self.markers, self.blackouts,
            min_gap_days=self.min_gap_days, viewport_bounds_px=viewport_bounds_px,
        )

    def dispatch(self, event, viewport_bounds_px=None):
        if isinstance(event, PointerDown) and self.gesture is not None:
            LOGGER.debug("Pointer-down ignored; %r is still active", self.gesture)
            return []
        transition = step(self.gesture, event, self.context(viewport_bounds_px))
        next_gesture = transition.gesture
        self.gesture = next_gesture if state_of(next_gesture) == ACTIVE else None
        return transition.effects

    # --- Viewport ---

    def scroll(self, days):
        self.viewport = self.viewport.shifted(days)
        return self.viewport

    def set_mode(self, mode, day_count=None):
        day_count = day_count or self.viewport.day_count
        self.viewport = Viewport(self.viewport.start, day_count, mode)
        return self.viewport

    # --- Persistence Stand-In ---

    def find(self, kind, entity_id):
        pool = {'item': self.items, 'marker': self.markers, 'blackout': self.blackouts}.get(kind)
        if pool is None:
            raise ValueError(f"Unsupported subject kind: {kind}")
        return next((entity for entity in pool if entity.id == entity_id), None)

    def apply_commit(self, commit):
        entity = self.find(commit.kind, commit.id)
        if entity is None:
            raise ValueError(f"No {commit.kind} with id '{commit.id}'.")
        if commit.kind == 'marker':
            entity.boundary_date = commit.final_range.start
        else:
            entity.time_range = commit.final_range
        LOGGER.info("Saved %s %s as %r", commit.kind, commit.id, commit.final_range)
        return entity

    def check_blackout(self, blackout_id, time_range):
        """Checks a new or edited blackout period against the others.

        Returns a Commit when the range fits, a ConfirmationRequired carrying
        an adjusted range when it overlaps another period, or a Reject when no
        adjustment fits. Nothing is saved here.
        """
        others = [b for b in self.blackouts if b.id != blackout_id]
        suggestion = suggest_blackout_placement(blackout_id, time_range, others)
        if not suggestion.has_conflict:
            return Commit(blackout_id, 'blackout', time_range, False)
        if suggestion.rejection is not None:
            LOGGER.info("Blackout %s cannot be placed: %s", blackout_id, suggestion.rejection.message)
            return Reject(blackout_id, suggestion.rejection.code, suggestion.explanation)
        return ConfirmationRequired(blackout_id, 'blackout', suggestion.suggested_range, suggestion.explanation)

    def save_blackout(self, blackout_id, title, time_range):
        """Adds or updates a blackout period. Raises ValueError if it would overlap another one."""
        report = detect_blackout_conflicts(blackout_id, time_range, self.blackouts)
        if report.has_conflict:
            names = ", ".join(b.title for b in report.conflicting_items)
            raise ValueError(f"Blackout period '{title}' overlaps: {names}")
        blackout = self.find('blackout', blackout_id)
        if blackout is None:
            blackout = BlackoutPeriod(blackout_id, time_range, title)
            self.blackouts.append(blackout)
        else:
            blackout.title, blackout.time_range = title, time_range
        LOGGER.info("Saved blackout %s as %r", blackout_id, time_range)
        return blackout

    def remove_blackout(self, blackout_id):
        self.blackouts = [b for b in self.blackouts if b.id != blackout_id]

