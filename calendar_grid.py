import collections
import math
from datetime import timedelta

from config import DAY_COLUMN_WIDTH, WEEK_COLUMN_WIDTH, WEEK_DAY_WIDTHS

Column = collections.namedtuple('Column', ['index', 'date', 'pixel_offset', 'pixel_width'])

# Left edge of each weekday inside a week column: 0, 22, 44, ... 132.
_WEEK_DAY_OFFSETS = tuple(sum(WEEK_DAY_WIDTHS[:i]) for i in range(len(WEEK_DAY_WIDTHS)))


def week_day_widths():
    """Pixel widths of Monday..Sunday inside a 153px week column."""
    return WEEK_DAY_WIDTHS

def column_width(mode):
    return WEEK_COLUMN_WIDTH if mode == 'weeks' else DAY_COLUMN_WIDTH

def day_width(mode, day_index):
    """Pixel width of the day `day_index` days after the viewport start."""
    if mode == 'weeks':
        return week_day_widths()[day_index % 7]
    return DAY_COLUMN_WIDTH

def day_offset(mode, day_index):
    """Left pixel edge of a day counted from the viewport start.

    In weeks mode the offset is built from whole 153px weeks plus the partial
    week, never from `day_index * 22`, or the 21px seventh day would push every
    later week one pixel to the right.
    """
    if mode == 'weeks':
        weeks, weekday = divmod(day_index, 7)
        return weeks * WEEK_COLUMN_WIDTH + _WEEK_DAY_OFFSETS[weekday]
    return day_index * DAY_COLUMN_WIDTH

def day_index_at(mode, px):
    """Index of the day whose column contains pixel `px` (floored, works off-grid)."""
    px = math.floor(px)
    if mode == 'weeks':
        weeks, remainder = divmod(px, WEEK_COLUMN_WIDTH)
        weekday = 0
        for i, left in enumerate(_WEEK_DAY_OFFSETS):
            if remainder >= left:
                weekday = i
        return weeks * 7 + weekday
    return px // DAY_COLUMN_WIDTH

def column_count(viewport):
    if viewport.mode == 'weeks':
        return -(-viewport.day_count // 7)
    return viewport.day_count

def grid_width(viewport):
    return column_count(viewport) * column_width(viewport.mode)

def build_columns(viewport):
    """Yields the columns of the viewport from left to right.

    Each call returns a fresh generator, so the sequence can be walked again.
    """
    width = column_width(viewport.mode)
    step = 7 if viewport.mode == 'weeks' else 1
    for index in range(column_count(viewport)):
        yield Column(index, viewport.start + timedelta(days=index * step), index * width, width)
