"""
Reusable CustomTkinter widgets for the Focus Session tracker.

Warm amber theme: timer, start/stop button, class-probability readout
and the scoreboard list.
"""
from typing import Dict, Optional, Sequence

import customtkinter as ctk
from customtkinter import CTkFont

from camera.base_classifier import ClassificationSample
from tracking.analytics import format_duration
from tracking.ledger import ScoreRecord


# --- Color Palette ---
COLORS = {
    "bg": "#FEF3C7",                # Amber 100 page background
    "nav": "#FDE68A",               # Amber 200 tab bar
    "card": "#FFFBEB",              # Amber 50 scoreboard card
    "text_primary": "#92400E",      # Amber 800
    "text_secondary": "#B45309",    # Amber 700
    "text_white": "#FFFFFF",
    "warning": "#DC2626",           # Red 600 for warning timer / errors
    "warning_dim": "#FCA5A5",       # Pulse partner for the warning timer
    "button_start": "#B45309",      # Amber 700
    "button_start_hover": "#92400E",
    "button_stop": "#6B7280",       # Gray 500
    "button_stop_hover": "#4B5563",
    "preview_placeholder": "#D1D5DB",  # Light gray when the camera is off
}

# Font sizes by role
FONT_SIZES = {
    "timer": 40,
    "title": 24,
    "button": 18,
    "body": 14,
    "small": 12,
}

# Which font roles are bold
BOLD_FONTS = {"timer", "title", "button"}

# Warning timer blink interval
PULSE_MS = 500


def make_font(role: str) -> CTkFont:
    """
    Build the font for a UI role.

    Args:
        role: Key from FONT_SIZES (unknown roles fall back to "body")
    """
    size = FONT_SIZES.get(role, FONT_SIZES["body"])
    weight = "bold" if role in BOLD_FONTS else "normal"
    return CTkFont(size=size, weight=weight)


class FocusButton(ctk.CTkButton):
    """The single Start Focus / Stop Focus toggle."""

    def __init__(self, master, command, **kwargs):
        super().__init__(
            master,
            command=command,
            font=make_font("button"),
            corner_radius=28,
            height=56,
            width=200,
            text_color=COLORS["text_white"],
            **kwargs
        )
        self.set_active(False)

    def set_active(self, is_active: bool):
        if is_active:
            self.configure(
                text="Stop Focus",
                fg_color=COLORS["button_stop"],
                hover_color=COLORS["button_stop_hover"]
            )
        else:
            self.configure(
                text="Start Focus",
                fg_color=COLORS["button_start"],
                hover_color=COLORS["button_start_hover"]
            )


class TimerDisplay(ctk.CTkLabel):
    """
    HH:MM:SS stopwatch label.

    Turns red and blinks while the session is in warning.
    """

    def __init__(self, master, **kwargs):
        super().__init__(
            master,
            text=format_duration(0),
            font=make_font("timer"),
            text_color=COLORS["text_primary"],
            **kwargs
        )
        self._warning = False
        self._pulse_on = False
        self._pulse_job: Optional[str] = None

    def set_time(self, seconds: int, warning: bool = False):
        self.configure(text=format_duration(seconds))

        if warning and not self._warning:
            self._warning = True
            self._pulse()
        elif not warning and self._warning:
            self._warning = False
            self._stop_pulse()
            self.configure(text_color=COLORS["text_primary"])

    def _pulse(self):
        if not self._warning:
            return
        self._pulse_on = not self._pulse_on
        self.configure(text_color=COLORS["warning"] if self._pulse_on else COLORS["warning_dim"])
        self._pulse_job = self.after(PULSE_MS, self._pulse)

    def _stop_pulse(self):
        if self._pulse_job is not None:
            self.after_cancel(self._pulse_job)
            self._pulse_job = None
        self._pulse_on = False


class LabelContainer(ctk.CTkFrame):
    """One "label: probability" line per class, like the model's label readout."""

    def __init__(self, master, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._labels: Dict[str, ctk.CTkLabel] = {}

    def set_samples(self, samples: Optional[Sequence[ClassificationSample]]):
        samples = samples or ()
        seen = set()

        for sample in samples:
            seen.add(sample.label)
            label = self._labels.get(sample.label)
            if label is None:
                label = ctk.CTkLabel(self, font=make_font("body"), text_color=COLORS["text_secondary"])
                label.pack(anchor="w")
                self._labels[sample.label] = label
            label.configure(text=f"{sample.label}: {sample.probability:.2f}")

        for name in list(self._labels):
            if name not in seen:
                self._labels.pop(name).destroy()


class ScoreboardList(ctk.CTkScrollableFrame):
    """Ranked list of recorded sessions."""

    def __init__(self, master, **kwargs):
        super().__init__(master, fg_color=COLORS["card"], corner_radius=12, **kwargs)
        self._rows = []

    def set_records(self, records: Sequence[ScoreRecord]):
        for row in self._rows:
            row.destroy()
        self._rows = []

        if not records:
            empty = ctk.CTkLabel(
                self,
                text="No sessions yet",
                font=make_font("body"),
                text_color=COLORS["text_secondary"]
            )
            empty.pack(anchor="w", pady=4)
            self._rows.append(empty)
            return

        for rank, record in enumerate(records, 1):
            text = (
                f"{rank:>3}.  {format_duration(record.duration_seconds)}"
                f"    ended {record.ended_at.strftime('%I:%M:%S %p')}"
            )
            row = ctk.CTkLabel(
                self,
                text=text,
                font=make_font("body"),
                text_color=COLORS["text_primary"],
                anchor="w"
            )
            row.pack(fill="x", anchor="w", pady=2)
            self._rows.append(row)
