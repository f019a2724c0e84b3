import tkinter as tk
from tkinter import ttk, filedialog, messagebox
import logging
import time
from matplotlib.figure import Figure
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg
from matplotlib.patches import Patch

# Local imports
from config import (
    default_board_data, row_colors, status_colors, blackout_color, marker_color,
    AUTO_SCROLL_INTERVAL_MS, AUTO_SCROLL_STEP_DAYS, RESIZE_HANDLE_PX, DISPLAY_MODES,
)
from core_logic import TimeRange, format_date, parse_date, add_days
from calendar_grid import build_columns, grid_width
from coordinates import date_range_to_pixels, bar_edge_at, pixel_to_date, occupied_day_indices, free_day_span
from autoscroll import ScrollDecision, scroll_days
from row_arrangement import lanes_by_row, visible_items
from models import Viewport, item_from_dict, marker_from_dict, blackout_from_dict
from gesture import (
    PointerDown, PointerMove, PointerUp, Cancel, MOVE,
    VisualUpdate, ConflictPreview, AutoScroll, Commit, Reject, ConfirmationRequired, Click,
    confirm_suggestion,
)
from scheduling_state import SchedulingState
from dialogs import BlackoutPeriodDialog, BlackoutConflictDialog

LOGGER = logging.getLogger(__name__)

# Days shown per display mode.
VIEWPORT_DAYS = {'days': 35, 'weeks': 84}

# Chart lane holding blackout bars; work item lanes follow it.
BLACKOUT_LANE = 0


def _now_ms():
    return int(time.monotonic() * 1000)


class TimelineApp(tk.Tk):
    def __init__(self):
        super().__init__()
        self.title("Timeline Planner")
        self.geometry("1600x700")

        # --- App State ---
        self.scheduler = self._load_board(default_board_data)

        # --- UI State ---
        self._preview = {}
        self._conflict_ids = set()
        self._scroll_direction = None
        self._scroll_job = None
        self._last_pointer_x = None
        self._create_drag = None
        self.chart_items = []
        self.mode_var = tk.StringVar(value=self.scheduler.viewport.mode)
        self.min_gap_var = tk.IntVar(value=self.scheduler.min_gap_days)
        self.status_var = tk.StringVar(value="Drag a bar to move it, or its edges to resize it. Drag over free days on the blackout lane to add a blackout.")

        # --- Menu Bar ---
        self.create_menu()

        # --- Main Layout ---
        self.main_frame = ttk.Frame(self)
        self.main_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self.control_frame = ttk.Frame(self.main_frame, width=320, padding="10")
        self.control_frame.pack(side=tk.LEFT, fill=tk.Y, expand=False)

        self.chart_frame = ttk.Frame(self.main_frame)
        self.chart_frame.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True)

        ttk.Label(self, textvariable=self.status_var, anchor="w", padding=4).pack(side=tk.BOTTOM, fill=tk.X)

        # --- Initialization ---
        self.setup_chart_canvas()
        self.build_controls()
        self.connect_drag_events()
        self.bind("<Escape>", self.on_escape)
        self.draw_timeline()

    @staticmethod
    def _load_board(data):
        mode = 'days'
        viewport = Viewport(parse_date(data['viewport_start']), data.get('viewport_days', VIEWPORT_DAYS[mode]), mode)
        return SchedulingState(
            viewport,
            items=[item_from_dict(d) for d in data.get('items', [])],
            markers=[marker_from_dict(d) for d in data.get('markers', [])],
            blackouts=[blackout_from_dict(d) for d in data.get('blackouts', [])],
        )

    def create_menu(self):
        menubar = tk.Menu(self)
        self.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Export Chart...", command=self.export_chart)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.quit)

        view_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="View", menu=view_menu)
        for mode in DISPLAY_MODES:
            view_menu.add_radiobutton(label=mode.title(), value=mode, variable=self.mode_var, command=self.on_mode_change)
        view_menu.add_separator()
        view_menu.add_command(label="Previous", command=lambda: self.navigate(-1))
        view_menu.add_command(label="Next", command=lambda: self.navigate(1))

    def setup_chart_canvas(self):
        self.figure = Figure(figsize=(16, 5), dpi=100)
        self.ax = self.figure.add_subplot(111)
        self.canvas = FigureCanvasTkAgg(self.figure, self.chart_frame)
        self.canvas.get_tk_widget().pack(side=tk.TOP, fill=tk.BOTH, expand=True)

    def connect_drag_events(self):
        self.canvas.mpl_connect('button_press_event', self.on_press)
        self.canvas.mpl_connect('motion_notify_event', self.on_motion)
        self.canvas.mpl_connect('button_release_event', self.on_release)

    def build_controls(self):
        for widget in self.control_frame.winfo_children():
            widget.destroy()

        settings_frame = ttk.LabelFrame(self.control_frame, text="View Settings", padding="10")
        settings_frame.pack(fill=tk.X, pady=5)

        ttk.Label(settings_frame, text="Display Mode:").grid(row=0, column=0, sticky="w")
        mode_cb = ttk.Combobox(settings_frame, textvariable=self.mode_var, values=DISPLAY_MODES, state="readonly", width=10)
        mode_cb.grid(row=0, column=1, sticky="w", pady=2)
        mode_cb.bind("<<ComboboxSelected>>", self.on_mode_change)

        ttk.Label(settings_frame, text="Minimum Gap (days):").grid(row=1, column=0, sticky="w")
        gap_spin = ttk.Spinbox(settings_frame, from_=0, to=14, textvariable=self.min_gap_var, width=8, command=self.on_gap_change)
        gap_spin.grid(row=1, column=1, sticky="w", pady=2)
        gap_spin.bind("<FocusOut>", self.on_gap_change)
        gap_spin.bind("<Return>", self.on_gap_change)

        nav_frame = ttk.Frame(settings_frame)
        nav_frame.grid(row=2, column=0, columnspan=2, pady=(8, 0))
        ttk.Button(nav_frame, text="< Previous", command=lambda: self.navigate(-1)).pack(side=tk.LEFT, padx=5)
        ttk.Button(nav_frame, text="Next >", command=lambda: self.navigate(1)).pack(side=tk.LEFT, padx=5)

        blackout_frame = ttk.LabelFrame(self.control_frame, text="Blackout Periods", padding="10")
        blackout_frame.pack(fill=tk.BOTH, expand=True, pady=5)

        columns = ("start", "end")
        self.blackout_tree = ttk.Treeview(blackout_frame, columns=columns, show="tree headings", height=8)
        self.blackout_tree.heading("#0", text="Title")
        self.blackout_tree.column("#0", width=140, anchor='w')
        self.blackout_tree.heading("start", text="Start")
        self.blackout_tree.column("start", width=80, anchor='center')
        self.blackout_tree.heading("end", text="End")
        self.blackout_tree.column("end", width=80, anchor='center')
        self.blackout_tree.pack(fill=tk.BOTH, expand=True)
        self.blackout_tree.bind("<Double-1>", lambda e: self.edit_blackout())

        action_frame = ttk.Frame(self.control_frame)
        action_frame.pack(fill=tk.X, pady=10)
        ttk.Button(action_frame, text="Add Blackout", command=self.add_blackout).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Edit", command=self.edit_blackout).pack(side=tk.LEFT, padx=5)
        ttk.Button(action_frame, text="Remove", command=self.remove_blackout).pack(side=tk.LEFT, padx=5)

        self.populate_blackouts()

    def populate_blackouts(self):
        self.blackout_tree.delete(*self.blackout_tree.get_children())
        for blackout in sorted(self.scheduler.blackouts, key=lambda b: b.time_range.start):
            self.blackout_tree.insert(
                "", tk.END, iid=blackout.id, text=blackout.title,
                values=(format_date(blackout.time_range.start), format_date(blackout.time_range.end)),
            )

    # --- View Controls ---

    def on_mode_change(self, event=None):
        if self.scheduler.is_dragging:
            return
        mode = self.mode_var.get()
        self.scheduler.set_mode(mode, VIEWPORT_DAYS[mode])
        LOGGER.info("Display mode set to %s", mode)
        self.draw_timeline()

    def on_gap_change(self, event=None):
        try:
            gap = self.min_gap_var.get()
        except tk.TclError:
            self.min_gap_var.set(self.scheduler.min_gap_days)
            return
        if gap < 0:
            self.min_gap_var.set(self.scheduler.min_gap_days)
            return
        self.scheduler.min_gap_days = gap
        self.draw_timeline()

    def navigate(self, direction):
        if self.scheduler.is_dragging:
            return
        self.scheduler.scroll(direction * 7)
        self.draw_timeline()

    # --- Blackout Editing ---

    def _selected_blackout(self):
        selection = self.blackout_tree.selection()
        if not selection:
            messagebox.showinfo("Blackout Periods", "Select a blackout period first.")
            return None
        return self.scheduler.find('blackout', selection[0])

    def _next_blackout_id(self):
        taken = {b.id for b in self.scheduler.blackouts}
        n = len(taken) + 1
        while f"h-{n}" in taken:
            n += 1
        return f"h-{n}"

    def add_blackout(self, initial_range=None):
        dialog = BlackoutPeriodDialog(self, "Add Blackout Period", initial_range=initial_range)
        if dialog.result:
            title, time_range = dialog.result
            self.save_blackout(self._next_blackout_id(), title, time_range)

    def edit_blackout(self, blackout=None):
        blackout = blackout or self._selected_blackout()
        if blackout is None:
            return
        dialog = BlackoutPeriodDialog(self, "Edit Blackout Period", blackout)
        if dialog.result:
            title, time_range = dialog.result
            self.save_blackout(blackout.id, title, time_range)

    def save_blackout(self, blackout_id, title, time_range):
        """Saves a blackout, offering an adjusted range first if it overlaps another period."""
        effect = self.scheduler.check_blackout(blackout_id, time_range)
        if isinstance(effect, Reject):
            messagebox.showwarning("Blackout Overlap", effect.message)
            return
        if isinstance(effect, ConfirmationRequired):
            dialog = BlackoutConflictDialog(self, "Blackout Overlap", effect)
            if not dialog.result:
                LOGGER.info("Blackout %s not saved; suggested range declined", blackout_id)
                return
            effect = confirm_suggestion(effect)
        try:
            self.scheduler.save_blackout(blackout_id, title, effect.final_range)
        except ValueError as e:
            messagebox.showerror("Blackout Overlap", str(e))
            return
        self.populate_blackouts()
        self.draw_timeline()

    def remove_blackout(self):
        blackout = self._selected_blackout()
        if blackout is None:
            return
        if messagebox.askyesno("Remove Blackout", f"Remove '{blackout.title}'?"):
            self.scheduler.remove_blackout(blackout.id)
            self.populate_blackouts()
            self.draw_timeline()

    # --- Pointer Handling ---

    def _content_bounds(self):
        return (0, grid_width(self.scheduler.viewport))

    def _hit_test(self, event):
        """Topmost chart item under the pointer and the action its position implies."""
        for item in reversed(self.chart_items):
            if item['lane'] != round(event.ydata):
                continue
            if item['kind'] == 'marker':
                centre = item['span'].offset_px + item['span'].width_px / 2
                if abs(event.xdata - centre) <= RESIZE_HANDLE_PX:
                    return item, MOVE
                continue
            action = bar_edge_at(event.xdata, item['span'], RESIZE_HANDLE_PX)
            if action is not None:
                return item, action
        return None, None

    def _event_x(self, event):
        if event.xdata is not None:
            return event.xdata
        # Outside the axes; map display pixels into chart pixels so edge drags keep scrolling.
        return self.ax.transData.inverted().transform((event.x, event.y))[0]

    def on_press(self, event):
        if event.inaxes != self.ax or event.button != 1 or event.xdata is None or event.ydata is None:
            return
        item, action = self._hit_test(event)
        if item is None:
            if round(event.ydata) == BLACKOUT_LANE:
                self._start_create_drag(event.xdata)
            return
        self._last_pointer_x = event.xdata
        self.dispatch(PointerDown(item['entity'], item['kind'], action, event.xdata, _now_ms()))
        if self.scheduler.is_dragging:
            cursor = "hand2" if action == MOVE else "sb_h_double_arrow"
            self.canvas.get_tk_widget().config(cursor=cursor)

    def on_motion(self, event):
        if self._create_drag is not None:
            self._update_create_drag(self._event_x(event))
            return
        if not self.scheduler.is_dragging:
            return
        self._last_pointer_x = self._event_x(event)
        self.dispatch(PointerMove(self._last_pointer_x, _now_ms()))

    def on_release(self, event):
        if self._create_drag is not None:
            self._finish_create_drag()
            return
        if not self.scheduler.is_dragging:
            return
        self.dispatch(PointerUp(self._event_x(event), _now_ms()))
        self.canvas.get_tk_widget().config(cursor="")

    def on_escape(self, event=None):
        if self._create_drag is not None:
            self._create_drag = None
            self.draw_timeline()
        if self.scheduler.is_dragging:
            self.dispatch(Cancel())
            self.canvas.get_tk_widget().config(cursor="")

    def dispatch(self, event):
        effects = self.scheduler.dispatch(event, viewport_bounds_px=self._content_bounds())
        self.handle_effects(effects)

    def handle_effects(self, effects):
        scroll_requested = False
        for effect in effects:
            if isinstance(effect, VisualUpdate):
                self._preview[(effect.subject_kind, effect.subject_id)] = effect.visual_range
                for marker_id, marker_date in effect.dependents:
                    self._preview[('marker', marker_id)] = TimeRange(marker_date, marker_date)
            elif isinstance(effect, ConflictPreview):
                self._conflict_ids = set(effect.conflicting_ids) if effect.has_conflict else set()
            elif isinstance(effect, AutoScroll):
                scroll_requested = True
                self._start_autoscroll(effect)
            elif isinstance(effect, Commit):
                self.scheduler.apply_commit(effect)
            elif isinstance(effect, Reject):
                messagebox.showwarning("Change Not Allowed", effect.message)
            elif isinstance(effect, ConfirmationRequired):
                self._confirm(effect)
            elif isinstance(effect, Click):
                self._on_click(effect)

        if not scroll_requested:
            self._scroll_direction = None
        if not self.scheduler.is_dragging:
            self._preview.clear()
            self._conflict_ids = set()
        self.draw_timeline()

    def _confirm(self, confirmation):
        dialog = BlackoutConflictDialog(self, "Blackout Overlap", confirmation)
        if dialog.result:
            self.scheduler.apply_commit(confirm_suggestion(confirmation))
            self.populate_blackouts()
        else:
            LOGGER.info("Kept original dates for %s %s", confirmation.kind, confirmation.id)

    def _on_click(self, click):
        entity = self.scheduler.find(click.subject_kind, click.subject_id)
        if click.subject_kind == 'blackout':
            self.edit_blackout(entity)
        elif click.subject_kind == 'item':
            rng = entity.effective_range(self.scheduler.viewport)
            end = "ongoing" if entity.continuous else format_date(rng.end)
            self.status_var.set(f"{entity.name}: {format_date(rng.start)} to {end}")
        else:
            self.status_var.set(f"Phase boundary {format_date(entity.boundary_date)}")

    # --- Auto-Scroll ---

    def _start_autoscroll(self, effect):
        self._scroll_direction = effect.direction
        if self._scroll_job is None:
            effect.token.on_cancel(self._stop_autoscroll)
            self._scroll_job = self.after(AUTO_SCROLL_INTERVAL_MS, self._autoscroll_tick)

    def _stop_autoscroll(self):
        self._scroll_direction = None
        if self._scroll_job is not None:
            self.after_cancel(self._scroll_job)
            self._scroll_job = None

    def _autoscroll_tick(self):
        self._scroll_job = None
        if self._scroll_direction is None or not self.scheduler.is_dragging:
            return
        step = AUTO_SCROLL_STEP_DAYS * (7 if self.scheduler.viewport.mode == 'weeks' else 1)
        self.scheduler.scroll(scroll_days(ScrollDecision(True, self._scroll_direction), step))
        # Replaying the last pointer position keeps the bar under the pointer.
        self.dispatch(PointerMove(self._last_pointer_x, _now_ms()))

    # --- Blackout Creation By Drag ---

    def _free_day_hit(self, x):
        viewport = self.scheduler.viewport
        return pixel_to_date(x, viewport, occupied_day_indices(self.scheduler.blackouts, viewport))

    def _start_create_drag(self, x):
        hit = self._free_day_hit(x)
        if not hit.is_valid:
            return
        self._create_drag = {'anchor': hit.day_index, 'span': (hit.day_index, hit.day_index)}
        self.status_var.set(f"New blackout from {format_date(hit.date)}")
        self.draw_timeline()

    def _update_create_drag(self, x):
        viewport = self.scheduler.viewport
        hit = self._free_day_hit(x)
        span = free_day_span(self._create_drag['anchor'], hit.day_index,
                             occupied_day_indices(self.scheduler.blackouts, viewport), viewport.day_count)
        # Sweeps across an existing blackout keep the last free span.
        if span is not None and span != self._create_drag['span']:
            self._create_drag['span'] = span
            self.draw_timeline()

    def _finish_create_drag(self):
        first, last = self._create_drag['span']
        self._create_drag = None
        start = self.scheduler.viewport.start
        self.draw_timeline()
        self.add_blackout(TimeRange(add_days(start, first), add_days(start, last)))

    # --- Drawing ---

    def _range_for(self, kind, entity):
        return self._preview.get((kind, entity.id), entity.time_range)

    def draw_timeline(self):
        self.ax.clear()
        self.chart_items = []
        viewport = self.scheduler.viewport
        width = grid_width(viewport)

        lanes = lanes_by_row(visible_items(self.scheduler.items, viewport), row_colors.keys(), self.scheduler.min_gap_days)

        # Blackouts shade the whole chart and are grabbed on their own lane.
        for blackout in self.scheduler.blackouts:
            span = date_range_to_pixels(self._range_for('blackout', blackout), viewport)
            self.ax.axvspan(span.offset_px, span.offset_px + span.width_px, color=blackout_color, alpha=0.5, zorder=0)
            self.ax.barh(y=BLACKOUT_LANE, width=span.width_px, left=span.offset_px, height=0.5,
                         color=blackout_color, edgecolor='black', align='center')
            self.ax.text(span.offset_px + 4, BLACKOUT_LANE, blackout.title, va='center', fontsize=8, clip_on=True)
            self.chart_items.append({'kind': 'blackout', 'entity': blackout, 'span': span, 'lane': BLACKOUT_LANE})

        if self._create_drag is not None:
            first, last = self._create_drag['span']
            span = date_range_to_pixels(TimeRange(add_days(viewport.start, first), add_days(viewport.start, last)), viewport)
            self.ax.barh(y=BLACKOUT_LANE, width=span.width_px, left=span.offset_px, height=0.5,
                         color=blackout_color, edgecolor='black', hatch='//', alpha=0.6, align='center')

        y_labels = ["Blackouts"]
        dragging_id = self.scheduler.gesture.subject_id if self.scheduler.is_dragging else None
        for lane_index, (row_id, lane_items) in enumerate(lanes, start=1):
            y_labels.append(str(row_id))
            for item in lane_items:
                time_range = self._range_for('item', item)
                span = date_range_to_pixels(time_range, viewport, continuous=item.continuous)
                if item.id in self._conflict_ids:
                    color = status_colors['Conflict']
                elif item.id == dragging_id:
                    color = status_colors['Preview']
                else:
                    color = row_colors.get(row_id, status_colors['Committed'])
                self.ax.barh(y=lane_index, width=span.width_px, left=span.offset_px, height=0.6,
                             color=color, edgecolor='black', align='center', alpha=0.9)
                self.ax.text(span.offset_px + 4, lane_index, item.name, va='center', fontsize=8, clip_on=True)
                self.chart_items.append({'kind': 'item', 'entity': item, 'span': span, 'lane': lane_index})

                for marker in self.scheduler.markers:
                    if marker.parent_item_id != item.id:
                        continue
                    marker_range = self._range_for('marker', marker)
                    marker_span = date_range_to_pixels(marker_range, viewport)
                    centre = marker_span.offset_px + marker_span.width_px / 2
                    locked = marker.is_first or marker.is_last
                    self.ax.plot([centre, centre], [lane_index - 0.3, lane_index + 0.3], color=marker_color,
                                 linewidth=1 if locked else 2.5, linestyle=':' if locked else '-')
                    self.chart_items.append({'kind': 'marker', 'entity': marker, 'span': marker_span, 'lane': lane_index})

        # --- Axis Formatting ---
        ticks, labels = [], []
        for column in build_columns(viewport):
            self.ax.axvline(column.pixel_offset, color='#eeeeee', linewidth=0.8, zorder=0)
            ticks.append(column.pixel_offset + column.pixel_width / 2)
            if viewport.mode == 'weeks':
                labels.append(f"W/C {column.date.strftime('%d %b')}")
            else:
                labels.append(column.date.strftime('%a\n%d'))
        self.ax.set_xticks(ticks)
        self.ax.set_xticklabels(labels, fontsize=7)
        self.ax.set_xlim(0, width)
        self.ax.set_yticks(range(len(y_labels)))
        self.ax.set_yticklabels(y_labels)
        self.ax.set_ylim(len(y_labels) - 0.5, -0.5)
        self.ax.set_title(f"{format_date(viewport.start)} to {format_date(viewport.end)}")

        legend_elements = [Patch(facecolor=color, edgecolor='black', label=row_id) for row_id, color in row_colors.items()]
        legend_elements += [Patch(facecolor=status_colors[name], edgecolor='black', label=name) for name in ('Preview', 'Conflict')]
        self.ax.legend(handles=legend_elements, loc='lower right', fontsize=7)
        self.canvas.draw_idle()

    def export_chart(self):
        filepath = filedialog.asksaveasfilename(
            title="Export Timeline",
            defaultextension=".png",
            filetypes=[
                ("PNG Image", "*.png"),
                ("PDF Document", "*.pdf"),
                ("SVG Vector Image", "*.svg"),
                ("All Files", "*.*")
            ]
        )
        if not filepath:
            return

        try:
            self.figure.savefig(filepath, bbox_inches='tight', dpi=300)
            LOGGER.info("Exported timeline to %s", filepath)
            messagebox.showinfo("Export Successful", f"Timeline saved to\n{filepath}")
        except (OSError, ValueError) as e:
            LOGGER.exception("Export failed")
            messagebox.showerror("Export Error", f"An error occurred while exporting the timeline: {e}")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    app = TimelineApp()
    app.mainloop()
