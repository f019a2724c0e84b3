from datetime import timedelta

from config import DISPLAY_MODES
from core_logic import TimeRange, normalize_date, week_start_for, format_date

BOUNDARY_KINDS = ('start', 'end')


class TimelineItem:
    """A work item occupying a row. Continuous items have no end date of their own."""

    def __init__(self, id, name, row_id, time_range, continuous=False):
        self.id = id
        self.name = name
        self.row_id = row_id
        self.time_range = time_range
        self.continuous = continuous

    def effective_range(self, viewport):
        # A continuous item always runs to the edge of whatever is on screen.
        if self.continuous:
            end = max(viewport.end, self.time_range.start)
            return TimeRange(self.time_range.start, end)
        return self.time_range

    def __repr__(self):
        flag = ", continuous" if self.continuous else ""
        return f"TimelineItem({self.id!r}, {self.time_range!r}{flag})"


class SubPhaseMarker:
    """A phase boundary inside a work item, held as a single day.

    The first and last markers of an item sit on its start and end and only
    move with it; the others can be dragged between their neighbours.
    """

    def __init__(self, id, parent_item_id, boundary_date, boundary_kind='end', is_first=False, is_last=False):
        if boundary_kind not in BOUNDARY_KINDS:
            raise ValueError(f"Unsupported boundary kind: {boundary_kind}")
        self.id = id
        self.parent_item_id = parent_item_id
        self.boundary_date = normalize_date(boundary_date)
        self.boundary_kind = boundary_kind
        self.is_first = is_first
        self.is_last = is_last

    @property
    def time_range(self):
        return TimeRange(self.boundary_date, self.boundary_date)

    def __repr__(self):
        return f"SubPhaseMarker({self.id!r}, {format_date(self.boundary_date)})"


class BlackoutPeriod:
    """A date range excluded from scheduling. Not tied to a row; periods never share a day."""

    def __init__(self, id, time_range, title):
        self.id = id
        self.time_range = time_range
        self.title = title

    def __repr__(self):
        return f"BlackoutPeriod({self.id!r}, {self.title!r}, {self.time_range!r})"


class Viewport:
    """The visible window of the timeline.

    In weeks mode the start snaps back to the Monday of its week so that every
    column begins on a week boundary.
    """

    def __init__(self, start, day_count, mode='days'):
        if mode not in DISPLAY_MODES:
            raise ValueError(f"Unsupported display mode: {mode}")
        if day_count < 1:
            raise ValueError("Viewport must show at least one day.")
        start = normalize_date(start)
        if mode == 'weeks':
            start = week_start_for(start)
        self.start = start
        self.day_count = day_count
        self.mode = mode

    @property
    def end(self):
        return self.start + timedelta(days=self.day_count - 1)

    def shifted(self, days):
        return Viewport(self.start + timedelta(days=days), self.day_count, self.mode)

    def with_mode(self, mode):
        return Viewport(self.start, self.day_count, mode)

    def __eq__(self, other):
        if not isinstance(other, Viewport):
            return NotImplemented
        return (self.start, self.day_count, self.mode) == (other.start, other.day_count, other.mode)

    def __repr__(self):
        return f"Viewport({format_date(self.start)}, {self.day_count} days, {self.mode})"


def item_from_dict(data):
    start = normalize_date(data['start'])
    end = normalize_date(data['end']) if data.get('end') else start
    return TimelineItem(
        data['id'], data.get('name', data['id']), data.get('row_id'),
        TimeRange(start, end), continuous=bool(data.get('continuous')),
    )

def marker_from_dict(data):
    return SubPhaseMarker(
        data['id'], data['parent_item_id'], data['boundary_date'],
        boundary_kind=data.get('boundary_kind', 'end'),
        is_first=bool(data.get('is_first')), is_last=bool(data.get('is_last')),
    )

def blackout_from_dict(data):
    return BlackoutPeriod(data['id'], TimeRange(data['start'], data['end']), data.get('title', ''))
