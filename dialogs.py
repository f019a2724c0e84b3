import tkinter as tk
from tkinter import ttk, simpledialog, messagebox

from core_logic import TimeRange, parse_date, format_date
from collision import validate_blackout_placement


class BlackoutPeriodDialog(simpledialog.Dialog):
    """Add or edit a blackout period. `result` is (title, TimeRange) or None.

    Overlaps with other periods are checked by the caller, which offers an
    adjusted range for confirmation before anything is saved.
    """

    def __init__(self, parent, title, blackout=None, initial_range=None):
        self.blackout = blackout
        self.initial_range = blackout.time_range if blackout else initial_range
        self.result = None
        super().__init__(parent, title)

    def body(self, master):
        main_frame = ttk.LabelFrame(master, text="Blackout Period", padding=10)
        main_frame.pack(fill=tk.X, padx=10, pady=5)

        initial_title = self.blackout.title if self.blackout else ""
        initial_start = format_date(self.initial_range.start) if self.initial_range else ""
        initial_end = format_date(self.initial_range.end) if self.initial_range else ""

        ttk.Label(main_frame, text="Title:").grid(row=0, column=0, sticky="w", padx=5, pady=2)
        self.title_var = tk.StringVar(value=initial_title)
        title_entry = ttk.Entry(main_frame, textvariable=self.title_var, width=40)
        title_entry.grid(row=0, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="Start Date:").grid(row=1, column=0, sticky="w", padx=5, pady=2)
        self.start_var = tk.StringVar(value=initial_start)
        ttk.Entry(main_frame, textvariable=self.start_var, width=40).grid(row=1, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(main_frame, text="End Date:").grid(row=2, column=0, sticky="w", padx=5, pady=2)
        self.end_var = tk.StringVar(value=initial_end)
        ttk.Entry(main_frame, textvariable=self.end_var, width=40).grid(row=2, column=1, sticky="w", padx=5, pady=2)

        ttk.Label(master, text="Dates use DD-MM-YYYY.",
                  font=("Arial", 8, "italic")).pack(anchor="w", padx=10, pady=(0, 10))
        return title_entry

    def validate(self):
        report = validate_blackout_placement(self.title_var.get(), self.start_var.get(), self.end_var.get())
        if not report.is_valid:
            messagebox.showerror("Invalid Blackout", "\n".join(report.errors), parent=self)
            return False
        if report.warnings:
            return messagebox.askyesno("Please Confirm", "\n".join(report.warnings) + "\n\nSave anyway?", parent=self)
        return True

    def apply(self):
        time_range = TimeRange(parse_date(self.start_var.get()), parse_date(self.end_var.get()))
        self.result = (self.title_var.get().strip(), time_range)


class BlackoutConflictDialog(simpledialog.Dialog):
    """Shows why a blackout overlaps others and offers the suggested range."""

    def __init__(self, parent, title, confirmation):
        self.confirmation = confirmation
        self.result = False
        super().__init__(parent, title)

    def body(self, master):
        frame = ttk.Frame(master, padding=10)
        frame.pack(fill=tk.BOTH, expand=True)
        ttk.Label(frame, text=self.confirmation.explanation, justify=tk.LEFT).pack(anchor="w")
        suggested = self.confirmation.suggested_range
        ttk.Label(
            frame,
            text=f"Apply {format_date(suggested.start)} to {format_date(suggested.end)}?",
            font=("Arial", 10, "bold"),
        ).pack(anchor="w", pady=(10, 0))
        return frame

    def buttonbox(self):
        box = ttk.Frame(self)
        ttk.Button(box, text="Apply Suggestion", command=self.ok, default=tk.ACTIVE).pack(side=tk.LEFT, padx=5, pady=5)
        ttk.Button(box, text="Keep Original", command=self.cancel).pack(side=tk.LEFT, padx=5, pady=5)
        self.bind("<Return>", self.ok)
        self.bind("<Escape>", self.cancel)
        box.pack()

    def apply(self):
        self.result = True
