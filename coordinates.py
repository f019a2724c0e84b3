import collections
import math

from config import MIN_BAR_WIDTH_RATIO
from calendar_grid import day_offset, day_width, day_index_at, grid_width
from core_logic import days_between, add_days

PixelSpan = collections.namedtuple('PixelSpan', ['offset_px', 'width_px'])
DateHit = collections.namedtuple('DateHit', ['column_index', 'day_index', 'date', 'is_valid'])


def min_bar_width(mode, day_index=0):
    return int(day_width(mode, day_index) * MIN_BAR_WIDTH_RATIO)

def date_range_to_pixels(time_range, viewport, continuous=False):
    """Pixel offset and width of a bar covering `time_range` (end inclusive).

    Continuous ranges are drawn to the viewport end. Very short bars are
    widened to 80% of a day so they can still be grabbed.
    """
    start_index = days_between(viewport.start, time_range.start)
    end = viewport.end if continuous else time_range.end
    end_index = days_between(viewport.start, end)

    offset = day_offset(viewport.mode, start_index)
    width = day_offset(viewport.mode, end_index + 1) - offset
    return PixelSpan(offset, max(width, min_bar_width(viewport.mode, start_index)))

def pixel_to_date(pointer_px, viewport, excluded=()):
    """Resolves a pointer position to the day column underneath it.

    `excluded` holds day indices that may not be picked (e.g. days already
    covered by a blackout period).
    """
    day_index = day_index_at(viewport.mode, pointer_px)
    column_index = day_index // 7 if viewport.mode == 'weeks' else day_index
    is_valid = (
        0 <= pointer_px < grid_width(viewport)
        and 0 <= day_index < viewport.day_count
        and day_index not in excluded
    )
    return DateHit(column_index, day_index, add_days(viewport.start, day_index), is_valid)

def day_delta(origin_px, current_px, mode):
    """Whole days between the columns under two pointer positions."""
    return day_index_at(mode, current_px) - day_index_at(mode, origin_px)

def occupied_day_indices(blackouts, viewport):
    occupied = set()
    for blackout in blackouts:
        first = max(0, days_between(viewport.start, blackout.time_range.start))
        last = min(viewport.day_count - 1, days_between(viewport.start, blackout.time_range.end))
        occupied.update(range(first, last + 1))
    return sorted(occupied)

def bar_edge_at(pointer_px, span, handle_px):
    """Which part of a bar the pointer is over: 'resize-start', 'resize-end', 'move' or None."""
    left = span.offset_px
    right = span.offset_px + span.width_px
    if not left <= pointer_px <= right:
        return None
    # Narrow bars keep a grabbable body in the middle.
    handle = min(handle_px, math.floor(span.width_px / 3))
    if pointer_px - left < handle:
        return 'resize-start'
    if right - pointer_px < handle:
        return 'resize-end'
    return 'move'

def free_day_span(anchor_index, current_index, excluded=(), day_count=None):
    """Inclusive (first, last) day indices swept between two picks.

    Used when a blackout is created by dragging over empty days. Returns None
    when the sweep crosses an excluded day.
    """
    first, last = sorted((anchor_index, current_index))
    if day_count is not None:
        first, last = max(first, 0), min(last, day_count - 1)
        if first > last:
            return None
    excluded = set(excluded)
    if any(i in excluded for i in range(first, last + 1)):
        return None
    return first, last
