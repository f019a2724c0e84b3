"""
Gesture state machine for moving and resizing bars on the timeline.

A gesture lives from pointer-down to pointer-up. Every transition is a plain
function of (gesture, event, context) that returns the next gesture and a list
of effects; the caller renders, persists or prompts based on those effects.

    IDLE -> ACTIVE -> RESOLVING -> COMMITTED
                                -> CANCELLED
"""

import collections
import copy
import logging
from datetime import timedelta

import autoscroll
from config import MIN_GAP_DAYS, MIN_DURATION_DAYS, MAX_DURATION_DAYS, CLICK_MAX_MS, CLICK_MAX_PX
from collision import detect_conflicts, detect_blackout_conflicts, resolve, suggest_blackout_placement
from coordinates import day_delta
from core_logic import TimeRange, days_between
from errors import GestureRejected, Rejection, LOCKED_BOUNDARY, NO_ROOM
from row_arrangement import arrange_rows, find_row_index, track_members, find_free_row

LOGGER = logging.getLogger(__name__)

IDLE = 'idle'
ACTIVE = 'active'
RESOLVING = 'resolving'
COMMITTED = 'committed'
CANCELLED = 'cancelled'

MOVE = 'move'
RESIZE_START = 'resize-start'
RESIZE_END = 'resize-end'
ACTIONS = (MOVE, RESIZE_START, RESIZE_END)

SUBJECT_KINDS = ('item', 'marker', 'blackout')

# --- Events ---

PointerDown = collections.namedtuple('PointerDown', ['subject', 'subject_kind', 'action', 'x', 'timestamp'])
PointerMove = collections.namedtuple('PointerMove', ['x', 'timestamp'])
PointerUp = collections.namedtuple('PointerUp', ['x', 'timestamp'])
Cancel = collections.namedtuple('Cancel', [])

# --- Effects ---

VisualUpdate = collections.namedtuple('VisualUpdate', ['subject_id', 'subject_kind', 'visual_range', 'dependents'])
ConflictPreview = collections.namedtuple('ConflictPreview', ['subject_id', 'has_conflict', 'conflicting_ids'])
AutoScroll = collections.namedtuple('AutoScroll', ['direction', 'token'])
Commit = collections.namedtuple('Commit', ['id', 'kind', 'final_range', 'was_adjusted'])
Reject = collections.namedtuple('Reject', ['subject_id', 'code', 'message'])
ConfirmationRequired = collections.namedtuple('ConfirmationRequired', ['id', 'kind', 'suggested_range', 'explanation'])
Click = collections.namedtuple('Click', ['subject_id', 'subject_kind'])
Cancelled = collections.namedtuple('Cancelled', ['subject_id', 'subject_kind'])

Transition = collections.namedtuple('Transition', ['gesture', 'effects'])


class CancellationToken:
    """Released exactly once when its gesture leaves the active state."""

    def __init__(self):
        self._cancelled = False
        self._callbacks = []

    @property
    def cancelled(self):
        return self._cancelled

    def on_cancel(self, callback):
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class GestureContext:
    """Read-only snapshot the engine consults while a gesture is in flight."""

    def __init__(self, viewport, items=(), markers=(), blackouts=(), min_gap_days=MIN_GAP_DAYS, viewport_bounds_px=None):
        self.viewport = viewport
        self.items = list(items)
        self.markers = list(markers)
        self.blackouts = list(blackouts)
        self.min_gap_days = min_gap_days
        self.viewport_bounds_px = viewport_bounds_px

    def item_by_id(self, item_id):
        return next((item for item in self.items if item.id == item_id), None)

    def markers_for(self, parent_item_id):
        return [m for m in self.markers if m.parent_item_id == parent_item_id]

    def arrangement_for(self, item):
        """Lanes of the item's row, as arrange_rows lays them out on screen."""
        return arrange_rows([other for other in self.items if other.row_id == item.row_id], self.min_gap_days)

    def track_for(self, item):
        # Only items drawn on the same lane share a track.
        rows = self.arrangement_for(item)
        return track_members(rows, find_row_index(item.id, rows))


class Gesture:
    def __init__(self, subject, subject_kind, action, original_range, pointer_origin_px, mode,
                 started_at, origin_viewport_start, rules):
        self.subject = subject
        self.subject_kind = subject_kind
        self.action = action
        self.original_range = original_range
        self.pointer_origin_px = pointer_origin_px
        self.mode = mode
        self.started_at = started_at
        self.origin_viewport_start = origin_viewport_start
        self.rules = rules
        self.last_day_delta = 0
        self.last_pixel_delta = 0
        self.visual_range = original_range
        self.state = ACTIVE
        self.token = CancellationToken()

    @property
    def subject_id(self):
        return self.subject.id

    def replace(self, **changes):
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, name, value)
        return clone

    def __repr__(self):
        return f"Gesture({self.subject_kind}:{self.subject_id}, {self.action}, {self.state}, delta={self.last_day_delta})"


# --- Delta Application ---

def apply_delta(original_range, action, delta_days, min_duration_days=MIN_DURATION_DAYS, max_duration_days=MAX_DURATION_DAYS):
    """Range produced by shifting one or both boundaries of `original_range`.

    Resizes are clamped so the range keeps at least `min_duration_days` and at
    most `max_duration_days` between start and end; they never invert. A range
    already outside those limits (a single-day item, or one longer than the
    cap) is never pushed further out by the clamp, and a zero delta returns it
    unchanged.
    """
    if action not in ACTIONS:
        raise ValueError(f"Unsupported gesture action: {action}")
    if delta_days == 0:
        return original_range
    delta = timedelta(days=delta_days)
    start, end = original_range.start, original_range.end
    if action == MOVE:
        return TimeRange(start + delta, end + delta)
    if action == RESIZE_START:
        new_start = start + delta
        new_start = min(new_start, max(end - timedelta(days=min_duration_days), start))
        new_start = max(new_start, min(end - timedelta(days=max_duration_days), start))
        return TimeRange(new_start, end)
    new_end = end + delta
    new_end = max(new_end, min(start + timedelta(days=min_duration_days), end))
    new_end = min(new_end, max(start + timedelta(days=max_duration_days), end))
    return TimeRange(start, new_end)

def _pinned_boundary(action):
    if action == RESIZE_START:
        return 'end'
    if action == RESIZE_END:
        return 'start'
    return None


# --- Kind-Specific Rules ---

class ItemRules:
    kind = 'item'

    def check(self, subject, action):
        if subject.continuous and action == RESIZE_START:
            raise GestureRejected(LOCKED_BOUNDARY, f"The start of continuous item '{subject.name}' cannot be resized.")
        if subject.continuous and action == RESIZE_END:
            raise GestureRejected(LOCKED_BOUNDARY, f"Continuous item '{subject.name}' has no end to resize.")

    def original_range(self, subject):
        return subject.time_range

    def visual_range(self, gesture, delta, context):
        return apply_delta(gesture.original_range, gesture.action, delta)

    def dependents(self, gesture, visual_range, context):
        shift = timedelta(days=days_between(gesture.original_range.start, visual_range.start))
        moved = []
        for marker in context.markers_for(gesture.subject_id):
            if gesture.action == MOVE:
                moved.append((marker.id, marker.boundary_date + shift))
            elif gesture.action == RESIZE_START and marker.is_first:
                moved.append((marker.id, visual_range.start))
            elif gesture.action == RESIZE_END and marker.is_last:
                moved.append((marker.id, visual_range.end))
        return tuple(moved)

    def preview(self, gesture, visual_range, context):
        report = detect_conflicts(
            gesture.subject_id, visual_range, gesture.subject.row_id, context.track_for(gesture.subject),
            context.min_gap_days, continuous=gesture.subject.continuous,
        )
        return ConflictPreview(gesture.subject_id, report.has_conflict, tuple(i.id for i in report.conflicting_items))

    def resolve(self, gesture, proposed, context):
        subject = gesture.subject
        rows = context.arrangement_for(subject)
        track = track_members(rows, find_row_index(subject.id, rows))
        report = detect_conflicts(subject.id, proposed, subject.row_id, track, context.min_gap_days, continuous=subject.continuous)
        final_range, was_adjusted = proposed, False
        if report.has_conflict:
            resolution = resolve(
                proposed, report.conflicting_items, 'adjust', context.min_gap_days,
                pinned=_pinned_boundary(gesture.action), preserve_duration=gesture.action == MOVE,
                continuous=subject.continuous,
            )
            rejection = resolution.rejection
            if rejection is None:
                recheck = detect_conflicts(subject.id, resolution.final_range, subject.row_id, track,
                                           context.min_gap_days, continuous=subject.continuous)
                if recheck.has_conflict:
                    names = ", ".join(i.name for i in recheck.conflicting_items)
                    rejection = Rejection(NO_ROOM, f"No room on this row next to: {names}.")
            if rejection is None:
                final_range, was_adjusted = resolution.final_range, resolution.was_adjusted
            else:
                lane = find_free_row(rows, proposed, context.min_gap_days, subject.continuous, exclude_id=subject.id)
                if lane is None:
                    return _reject(gesture, rejection.code, rejection.message, context)
                # The row has another lane with room; the bar is laid out there unchanged.
                LOGGER.debug("No room for %s on its lane; lane %d of row %s is free", subject.id, lane, subject.row_id)

        effects = []
        dependents = self.dependents(gesture, final_range, context)
        if was_adjusted:
            effects.append(VisualUpdate(subject.id, self.kind, final_range, dependents))
        effects.append(Commit(subject.id, self.kind, final_range, was_adjusted))
        for marker_id, marker_date in dependents:
            effects.append(Commit(marker_id, 'marker', TimeRange(marker_date, marker_date), was_adjusted))
        LOGGER.info("Committed %s %s to %r", self.kind, subject.id, final_range)
        return Transition(gesture.replace(state=COMMITTED, visual_range=final_range), effects)


class MarkerRules:
    kind = 'marker'

    def check(self, subject, action):
        if subject.is_first:
            raise GestureRejected(LOCKED_BOUNDARY, "The first phase boundary is locked to the start of its item.")
        if subject.is_last:
            raise GestureRejected(LOCKED_BOUNDARY, "The last phase boundary is locked to the end of its item.")

    def original_range(self, subject):
        return subject.time_range

    def bounds(self, gesture, context):
        """Earliest and latest dates the marker may take, or None when unconstrained."""
        marker = gesture.subject
        lower, upper = None, None
        parent = context.item_by_id(marker.parent_item_id)
        if parent is not None:
            lower = parent.time_range.start + timedelta(days=1)
            if not parent.continuous:
                upper = parent.time_range.end - timedelta(days=1)
        for other in context.markers_for(marker.parent_item_id):
            if other.id == marker.id:
                continue
            if other.boundary_date < marker.boundary_date:
                candidate = other.boundary_date + timedelta(days=1)
                lower = candidate if lower is None else max(lower, candidate)
            elif other.boundary_date > marker.boundary_date:
                candidate = other.boundary_date - timedelta(days=1)
                upper = candidate if upper is None else min(upper, candidate)
        return lower, upper

    def visual_range(self, gesture, delta, context):
        original = gesture.original_range.start
        candidate = original + timedelta(days=delta)
        lower, upper = self.bounds(gesture, context)
        if lower is not None and upper is not None and lower > upper:
            return gesture.original_range
        if lower is not None:
            candidate = max(candidate, lower)
        if upper is not None:
            candidate = min(candidate, upper)
        return TimeRange(candidate, candidate)

    def dependents(self, gesture, visual_range, context):
        return ()

    def preview(self, gesture, visual_range, context):
        return None

    def resolve(self, gesture, proposed, context):
        if proposed == gesture.original_range:
            return Transition(gesture.replace(state=CANCELLED), [Cancelled(gesture.subject_id, self.kind)])
        LOGGER.info("Committed marker %s to %r", gesture.subject_id, proposed)
        return Transition(
            gesture.replace(state=COMMITTED, visual_range=proposed),
            [Commit(gesture.subject_id, self.kind, proposed, False)],
        )


class BlackoutRules:
    kind = 'blackout'

    def check(self, subject, action):
        pass

    def original_range(self, subject):
        return subject.time_range

    def visual_range(self, gesture, delta, context):
        return apply_delta(gesture.original_range, gesture.action, delta)

    def dependents(self, gesture, visual_range, context):
        return ()

    def preview(self, gesture, visual_range, context):
        report = detect_blackout_conflicts(gesture.subject_id, visual_range, context.blackouts)
        return ConflictPreview(gesture.subject_id, report.has_conflict, tuple(b.id for b in report.conflicting_items))

    def resolve(self, gesture, proposed, context):
        suggestion = suggest_blackout_placement(
            gesture.subject_id, proposed, context.blackouts, pinned=_pinned_boundary(gesture.action)
        )
        if not suggestion.has_conflict:
            LOGGER.info("Committed blackout %s to %r", gesture.subject_id, proposed)
            return Transition(
                gesture.replace(state=COMMITTED, visual_range=proposed),
                [Commit(gesture.subject_id, self.kind, proposed, False)],
            )
        if suggestion.rejection is not None:
            return _reject(gesture, suggestion.rejection.code, suggestion.explanation, context)
        # Blackout dates only move once the operator accepts the suggestion.
        LOGGER.info("Blackout %s overlaps %d period(s); asking for confirmation", gesture.subject_id, len(suggestion.conflicting))
        return Transition(
            gesture.replace(state=CANCELLED, visual_range=gesture.original_range),
            [
                VisualUpdate(gesture.subject_id, self.kind, gesture.original_range, ()),
                ConfirmationRequired(gesture.subject_id, self.kind, suggestion.suggested_range, suggestion.explanation),
            ],
        )


RULES = {
    'item': ItemRules(),
    'marker': MarkerRules(),
    'blackout': BlackoutRules(),
}

def _reject(gesture, code, message, context):
    LOGGER.warning("Rejected %s %s: %s", gesture.subject_kind, gesture.subject_id, message)
    return Transition(
        gesture.replace(state=CANCELLED, visual_range=gesture.original_range),
        [
            VisualUpdate(gesture.subject_id, gesture.subject_kind, gesture.original_range,
                         gesture.rules.dependents(gesture, gesture.original_range, context)),
            Reject(gesture.subject_id, code, message),
        ],
    )


# --- Transitions ---

def start_gesture(subject, subject_kind, action, pointer_px, timestamp, context):
    """Creates an active gesture, or raises GestureRejected for a disabled action."""
    if subject_kind not in RULES:
        raise ValueError(f"Unsupported subject kind: {subject_kind}")
    if action not in ACTIONS:
        raise GestureRejected(LOCKED_BOUNDARY, f"Unsupported gesture action: {action}")
    rules = RULES[subject_kind]
    rules.check(subject, action)
    gesture = Gesture(
        subject, subject_kind, action, rules.original_range(subject), pointer_px,
        context.viewport.mode, timestamp, context.viewport.start, rules,
    )
    LOGGER.debug("Started %r at x=%s", gesture, pointer_px)
    return gesture

def on_pointer_down(gesture, event, context):
    if gesture is not None and gesture.state == ACTIVE:
        # Only one gesture at a time; the caller should not send this.
        LOGGER.debug("Ignoring pointer-down while %r is active", gesture)
        return Transition(gesture, [])
    try:
        new_gesture = start_gesture(event.subject, event.subject_kind, event.action, event.x, event.timestamp, context)
    except GestureRejected as e:
        LOGGER.warning("Rejected %s on %s: %s", event.action, event.subject.id, e.reason.message)
        return Transition(None, [Reject(event.subject.id, e.reason.code, e.reason.message)])
    return Transition(new_gesture, [])

def current_day_delta(gesture, pointer_px, context):
    """Whole-day delta measured from the original pointer-down position.

    If the viewport scrolled since pointer-down, the scrolled days are added so
    the bar stays under the pointer.
    """
    scrolled = days_between(gesture.origin_viewport_start, context.viewport.start)
    return day_delta(gesture.pointer_origin_px, pointer_px, gesture.mode) + scrolled

def on_pointer_move(gesture, event, context):
    if gesture is None or gesture.state != ACTIVE:
        return Transition(gesture, [])
    delta = current_day_delta(gesture, event.x, context)
    visual = gesture.rules.visual_range(gesture, delta, context)
    effects = [
        VisualUpdate(gesture.subject_id, gesture.subject_kind, visual, gesture.rules.dependents(gesture, visual, context))
    ]
    preview = gesture.rules.preview(gesture, visual, context)
    if preview is not None:
        effects.append(preview)
    if context.viewport_bounds_px is not None:
        decision = autoscroll.evaluate(event.x, context.viewport_bounds_px)
        if decision.should_scroll:
            effects.append(AutoScroll(decision.direction, gesture.token))
    updated = gesture.replace(
        last_day_delta=delta,
        last_pixel_delta=event.x - gesture.pointer_origin_px,
        visual_range=visual,
    )
    return Transition(updated, effects)

def _is_click(gesture, timestamp):
    elapsed = timestamp - gesture.started_at
    return elapsed < CLICK_MAX_MS and abs(gesture.last_pixel_delta) < CLICK_MAX_PX

def on_pointer_up(gesture, event, context):
    if gesture is None or gesture.state != ACTIVE:
        return Transition(gesture, [])
    moved = on_pointer_move(gesture, PointerMove(event.x, event.timestamp), context).gesture
    moved.token.cancel()

    # Zero net movement ends the gesture before any resolution runs.
    if moved.last_day_delta == 0 or moved.visual_range == moved.original_range:
        effects = [Cancelled(moved.subject_id, moved.subject_kind)]
        if _is_click(moved, event.timestamp):
            effects.insert(0, Click(moved.subject_id, moved.subject_kind))
        return Transition(moved.replace(state=CANCELLED), effects)

    resolving = moved.replace(state=RESOLVING)
    return resolving.rules.resolve(resolving, moved.visual_range, context)

def on_cancel(gesture, event=None, context=None):
    if gesture is None or gesture.state != ACTIVE:
        return Transition(gesture, [])
    gesture.token.cancel()
    LOGGER.debug("Cancelled %r", gesture)
    dependents = () if context is None else gesture.rules.dependents(gesture, gesture.original_range, context)
    restored = [VisualUpdate(gesture.subject_id, gesture.subject_kind, gesture.original_range, dependents)]
    return Transition(
        gesture.replace(state=CANCELLED, visual_range=gesture.original_range),
        restored + [Cancelled(gesture.subject_id, gesture.subject_kind)],
    )

_HANDLERS = {
    PointerDown: on_pointer_down,
    PointerMove: on_pointer_move,
    PointerUp: on_pointer_up,
    Cancel: on_cancel,
}

def step(gesture, event, context):
    """Feeds one pointer event to the state machine."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise ValueError(f"Unsupported gesture event: {event!r}")
    return handler(gesture, event, context)

def confirm_suggestion(confirmation):
    """Turns an accepted ConfirmationRequired effect into a Commit."""
    LOGGER.info("Operator accepted %r for %s %s", confirmation.suggested_range, confirmation.kind, confirmation.id)
    return Commit(confirmation.id, confirmation.kind, confirmation.suggested_range, True)

def state_of(gesture):
    return IDLE if gesture is None else gesture.state
