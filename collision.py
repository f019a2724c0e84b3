import collections
import logging
from datetime import timedelta

from config import MIN_GAP_DAYS, BLACKOUT_GAP_DAYS, MIN_DURATION_DAYS, MAX_DURATION_DAYS
from core_logic import TimeRange, days_between, format_date, normalize_date
from errors import Rejection, MIN_DURATION, NO_ROOM

LOGGER = logging.getLogger(__name__)

ConflictReport = collections.namedtuple('ConflictReport', ['has_conflict', 'conflicting_items'])
Resolution = collections.namedtuple('Resolution', ['final_range', 'was_adjusted', 'rejection'])
BlackoutSuggestion = collections.namedtuple(
    'BlackoutSuggestion', ['has_conflict', 'conflicting', 'suggested_range', 'explanation', 'rejection']
)
ValidationReport = collections.namedtuple('ValidationReport', ['is_valid', 'errors', 'warnings'])

STRATEGIES = ('adjust',)


# --- Overlap Test ---

def ranges_conflict(a, b, min_gap_days=MIN_GAP_DAYS, a_continuous=False, b_continuous=False):
    """True when two ranges sharing a row sit closer than `min_gap_days`.

    The gap is measured from the end of the earlier range to the start of the
    later one. A continuous range has no end, so anything starting on or after
    its start conflicts with it.
    """
    if a.start <= b.start:
        earlier, later, earlier_continuous = a, b, a_continuous
    else:
        earlier, later, earlier_continuous = b, a, b_continuous
    if earlier_continuous:
        return True
    gap = days_between(earlier.end, later.start)
    return gap <= 0 or gap < min_gap_days

def detect_conflicts(subject_id, proposed_range, track_id, items_on_track, min_gap_days=MIN_GAP_DAYS, continuous=False):
    conflicting = []
    for item in items_on_track:
        if item.id == subject_id:
            continue
        if track_id is not None and getattr(item, 'row_id', track_id) != track_id:
            continue
        if ranges_conflict(proposed_range, item.time_range, min_gap_days,
                           continuous, getattr(item, 'continuous', False)):
            conflicting.append(item)
    return ConflictReport(bool(conflicting), conflicting)


# --- Resolution ---

def _conflict_side(proposed, item, min_gap_days, pinned, continuous):
    """Which boundary of `proposed` has to give way to `item`: 'left' moves the start, 'right' the end."""
    item_range = item.time_range
    if getattr(item, 'continuous', False) and item_range.start <= proposed.start:
        return 'left'
    if pinned == 'start' or getattr(item, 'continuous', False):
        return 'right'
    if pinned == 'end' or continuous:
        return 'left'
    start_cost = days_between(proposed.start, item_range.end + timedelta(days=min_gap_days))
    end_cost = days_between(item_range.start - timedelta(days=min_gap_days), proposed.end)
    if start_cost != end_cost:
        return 'left' if start_cost < end_cost else 'right'
    return 'left' if item_range.start <= proposed.start else 'right'

def resolve(proposed_range, conflicting_items, strategy='adjust', min_gap_days=MIN_GAP_DAYS,
            pinned=None, preserve_duration=False, continuous=False, min_duration_days=MIN_DURATION_DAYS):
    """Pushes `proposed_range` clear of `conflicting_items`.

    Each conflict is handled at the boundary nearer to it, leaving exactly
    `min_gap_days` between them. `pinned` ('start' or 'end') names a boundary
    that must not move; with `preserve_duration` the whole range shifts
    instead of shrinking. A rejected resolution carries the original proposal.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unsupported resolution strategy: {strategy}")
    if not conflicting_items:
        return Resolution(proposed_range, False, None)

    gap = timedelta(days=min_gap_days)
    earliest_start = None
    latest_end = None
    for item in conflicting_items:
        side = _conflict_side(proposed_range, item, min_gap_days, pinned, continuous)
        if side == 'left':
            if getattr(item, 'continuous', False):
                return _rejected(proposed_range, NO_ROOM, f"'{_label(item)}' runs without an end date; there is no room after it.")
            bound = item.time_range.end + gap
            earliest_start = bound if earliest_start is None else max(earliest_start, bound)
        else:
            if continuous:
                return _rejected(proposed_range, NO_ROOM, f"A continuous range cannot end before '{_label(item)}'.")
            bound = item.time_range.start - gap
            latest_end = bound if latest_end is None else min(latest_end, bound)

    start, end = proposed_range.start, proposed_range.end
    if preserve_duration:
        shift = timedelta(0)
        if earliest_start is not None and start < earliest_start:
            shift = earliest_start - start
        if latest_end is not None and end + shift > latest_end:
            if shift:
                return _rejected(proposed_range, NO_ROOM, "Not enough room between the neighbouring items.")
            shift = latest_end - end
        start, end = start + shift, end + shift
        if earliest_start is not None and start < earliest_start:
            return _rejected(proposed_range, NO_ROOM, "Not enough room between the neighbouring items.")
    else:
        if earliest_start is not None and start < earliest_start:
            start = earliest_start
        if latest_end is not None and end > latest_end:
            end = latest_end
        if (end - start).days < min_duration_days:
            if earliest_start is not None and latest_end is not None:
                return _rejected(proposed_range, NO_ROOM, "Not enough room between the neighbouring items.")
            return _rejected(
                proposed_range, MIN_DURATION,
                f"Keeping the minimum gap would leave less than {min_duration_days} day(s).",
            )

    final_range = TimeRange(start, end)
    LOGGER.debug("Adjusted %r to %r around %d conflict(s)", proposed_range, final_range, len(conflicting_items))
    return Resolution(final_range, final_range != proposed_range, None)

def _rejected(proposed_range, code, message):
    LOGGER.info("Resolution rejected (%s): %s", code, message)
    return Resolution(proposed_range, False, Rejection(code, message))

def _label(item):
    return getattr(item, 'name', None) or getattr(item, 'title', None) or item.id


# --- Blackout Periods ---

def detect_blackout_conflicts(subject_id, proposed_range, blackouts):
    # Blackouts are inclusive day ranges: they may touch but never share a day.
    return detect_conflicts(subject_id, proposed_range, None, blackouts, min_gap_days=BLACKOUT_GAP_DAYS)

def suggest_blackout_placement(subject_id, proposed_range, blackouts, pinned=None):
    """Checks a blackout against the others and proposes a non-overlapping range.

    The suggestion is never applied here; the explanation lists every
    conflicting period so the operator can confirm the change.
    """
    report = detect_blackout_conflicts(subject_id, proposed_range, blackouts)
    if not report.has_conflict:
        return BlackoutSuggestion(False, [], proposed_range, "", None)

    resolution = resolve(
        proposed_range, report.conflicting_items, min_gap_days=BLACKOUT_GAP_DAYS,
        pinned=pinned, min_duration_days=0,
    )
    lines = ["This blackout period overlaps:"]
    for blackout in report.conflicting_items:
        lines.append(
            f"  - {blackout.title} ({format_date(blackout.time_range.start)} to {format_date(blackout.time_range.end)})"
        )
    if resolution.rejection is not None:
        lines.append(f"No adjustment fits: {resolution.rejection.message}")
    else:
        lines.append(_describe_adjustment(proposed_range, resolution.final_range))
    return BlackoutSuggestion(True, report.conflicting_items, resolution.final_range, "\n".join(lines), resolution.rejection)

def _describe_adjustment(before, after):
    changes = []
    if after.start != before.start:
        changes.append(f"start moved to {format_date(after.start)}")
    if after.end != before.end:
        changes.append(f"end moved to {format_date(after.end)}")
    return "Suggested adjustment: " + " and ".join(changes) + "."

def validate_blackout_placement(title, start, end, existing=()):
    errors, warnings = [], []
    if not title or not title.strip():
        errors.append("Blackout title is required")
    try:
        start = normalize_date(start)
        end = normalize_date(end)
    except ValueError as e:
        errors.append(str(e))
        return ValidationReport(False, errors, warnings)

    if start > end:
        errors.append("Start date must be before or equal to end date")
    else:
        if days_between(start, end) > MAX_DURATION_DAYS:
            warnings.append("Blackout period exceeds 1 year - this may be unintentional")
        overlapping = [b for b in existing if b.time_range.start <= end and b.time_range.end >= start]
        if overlapping:
            names = ", ".join(b.title for b in overlapping)
            warnings.append(f"This blackout period overlaps with {len(overlapping)} existing period(s): {names}")
    return ValidationReport(not errors, errors, warnings)
