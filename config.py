import collections

# --- Grid Geometry ---

DAY_COLUMN_WIDTH = 52
WEEK_COLUMN_WIDTH = 153
# Six 22px days and one 21px day make up a 153px week column.
WEEK_DAY_WIDTHS = (22, 22, 22, 22, 22, 22, 21)
MIN_BAR_WIDTH_RATIO = 0.8

DISPLAY_MODES = ('days', 'weeks')

# --- Interaction Rules ---

MIN_GAP_DAYS = 2
BLACKOUT_GAP_DAYS = 1
MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 365
AUTO_SCROLL_MARGIN = 60
AUTO_SCROLL_STEP_DAYS = 1
AUTO_SCROLL_INTERVAL_MS = 120
CLICK_MAX_MS = 200
CLICK_MAX_PX = 3
RESIZE_HANDLE_PX = 8

DATE_FORMAT = "%d-%m-%Y"

# --- Default Data ---

# The board shown when the planner starts. Dates are DD-MM-YYYY.
default_board_data = {
    "viewport_start": "06-01-2025",
    "viewport_days": 35,
    "items": [
        {"id": "p-1", "name": "Website Relaunch", "row_id": "design", "start": "07-01-2025", "end": "15-01-2025"},
        {"id": "p-2", "name": "Brand Refresh", "row_id": "design", "start": "20-01-2025", "end": "28-01-2025"},
        {"id": "p-3", "name": "Mobile App Beta", "row_id": "engineering", "start": "09-01-2025", "end": "24-01-2025"},
        {"id": "p-4", "name": "Support Rotation", "row_id": "operations", "start": "06-01-2025", "end": None, "continuous": True},
    ],
    "markers": [
        {"id": "m-1", "parent_item_id": "p-3", "boundary_date": "09-01-2025", "boundary_kind": "start", "is_first": True},
        {"id": "m-2", "parent_item_id": "p-3", "boundary_date": "14-01-2025", "boundary_kind": "end"},
        {"id": "m-3", "parent_item_id": "p-3", "boundary_date": "19-01-2025", "boundary_kind": "end"},
        {"id": "m-4", "parent_item_id": "p-3", "boundary_date": "24-01-2025", "boundary_kind": "end", "is_last": True},
    ],
    "blackouts": [
        {"id": "h-1", "title": "Company Offsite", "start": "16-01-2025", "end": "17-01-2025"},
    ],
}

row_colors = collections.OrderedDict([
    ('design', '#f0ad4e'),
    ('engineering', '#5bc0de'),
    ('operations', '#5cb85c'),
])

status_colors = {
    'Committed': '#4f81bd',
    'Preview': '#9fc5e8',
    'Conflict': '#c0504d',
}

blackout_color = '#d9d9d9'
marker_color = '#31708f'
