from datetime import datetime, date, timedelta

from config import DATE_FORMAT

# --- Whole-Day Date Arithmetic ---

def normalize_date(value):
    """Returns a datetime at midnight for a date, datetime or DD-MM-YYYY string."""
    if isinstance(value, str):
        return parse_date(value)
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValueError(f"Cannot interpret {value!r} as a calendar date.")

def parse_date(text):
    try:
        return datetime.strptime(text.strip(), DATE_FORMAT)
    except (ValueError, AttributeError):
        raise ValueError(f"Invalid date '{text}'. Please use DD-MM-YYYY.")

def format_date(value):
    return value.strftime(DATE_FORMAT)

def add_days(start_date, days):
    return normalize_date(start_date) + timedelta(days=days)

def days_between(earlier, later):
    """Whole calendar days from `earlier` to `later` (negative if `later` comes first)."""
    return (normalize_date(later) - normalize_date(earlier)).days

def week_start_for(value):
    """The Monday of the week containing `value`."""
    day = normalize_date(value)
    return day - timedelta(days=day.weekday())


class TimeRange:
    """An inclusive span of calendar days, both ends at midnight."""

    __slots__ = ('start', 'end')

    def __init__(self, start, end):
        start = normalize_date(start)
        end = normalize_date(end)
        if start > end:
            raise ValueError(f"Range start {format_date(start)} is after its end {format_date(end)}.")
        self.start = start
        self.end = end

    def duration_days(self):
        return (self.end - self.start).days

    def shift(self, days):
        return TimeRange(self.start + timedelta(days=days), self.end + timedelta(days=days))

    def contains(self, value):
        return self.start <= normalize_date(value) <= self.end

    def __eq__(self, other):
        if not isinstance(other, TimeRange):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self):
        return hash((self.start, self.end))

    def __repr__(self):
        return f"TimeRange({format_date(self.start)} -> {format_date(self.end)})"
