from config import MIN_GAP_DAYS
from collision import ranges_conflict


def _sort_key(item):
    return (item.time_range.start, (item.name or '').lower(), item.id)

def _fits_after(last_item, item, min_gap_days):
    return not ranges_conflict(last_item.time_range, item.time_range, min_gap_days,
                               last_item.continuous, item.continuous)

def arrange_rows(items, min_gap_days=MIN_GAP_DAYS):
    """Packs items into the fewest rows where neighbours keep `min_gap_days` apart.

    Items are taken by start date (then name) and dropped into the first row
    whose last item leaves enough room. A row ending in a continuous item is
    full, since that item never ends.
    """
    rows = []
    for item in sorted(items, key=_sort_key):
        for row in rows:
            if _fits_after(row[-1], item, min_gap_days):
                row.append(item)
                break
        else:
            rows.append([item])
    return rows

def find_row_index(item_id, rows):
    for i, row in enumerate(rows):
        if any(item.id == item_id for item in row):
            return i
    return None

def track_members(rows, row_index):
    if row_index is None or not 0 <= row_index < len(rows):
        return []
    return list(rows[row_index])

def find_free_row(rows, proposed_range, min_gap_days=MIN_GAP_DAYS, continuous=False, exclude_id=None):
    """Index of the first row with room for `proposed_range`, or None if every row is taken."""
    for i, row in enumerate(rows):
        others = [item for item in row if item.id != exclude_id]
        if not any(ranges_conflict(proposed_range, item.time_range, min_gap_days, continuous, item.continuous)
                   for item in others):
            return i
    return None

def visible_items(items, viewport):
    visible = []
    for item in items:
        if item.time_range.start > viewport.end:
            continue
        # Continuous items stay on screen once they have started.
        if item.continuous or item.time_range.end >= viewport.start:
            visible.append(item)
    return visible

def lanes_by_row(items, row_order=(), min_gap_days=MIN_GAP_DAYS):
    """Screen lanes as (row_id, items) pairs, rows in `row_order` first.

    A row whose items crowd each other is split over several lanes so no bar
    is drawn on top of another.
    """
    grouped = {}
    for item in items:
        grouped.setdefault(item.row_id, []).append(item)
    ordered = [row_id for row_id in row_order if row_id in grouped]
    ordered += sorted((row_id for row_id in grouped if row_id not in row_order), key=str)
    lanes = []
    for row_id in ordered:
        for lane in arrange_rows(grouped[row_id], min_gap_days):
            lanes.append((row_id, lane))
    return lanes
