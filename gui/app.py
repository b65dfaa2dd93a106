"""
Focus Session Tracker - Desktop GUI Application

A small CustomTkinter window around the FocusEngine: start/stop button,
stopwatch, camera preview with pose overlay, and the scoreboard.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from tkinter import messagebox
from typing import Optional

import customtkinter as ctk
from PIL import Image

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from camera import create_classification_feed
from camera.base_classifier import ClassificationFeed
from gui.ui_components import (
    COLORS,
    FocusButton,
    LabelContainer,
    ScoreboardList,
    TimerDisplay,
    make_font,
)
from reporting.pdf_report import generate_scoreboard_report
from tracking.analytics import compute_statistics, format_duration, generate_summary_text
from tracking.engine import FocusEngine, SessionContext
from tracking.ledger import JsonLedgerStore, LedgerStore, ScoreRecord
from tracking.scheduler import PeriodicTask
from tracking.session import SessionSnapshot

logger = logging.getLogger(__name__)

WINDOW_WIDTH = 480
WINDOW_HEIGHT = 640


class FocusGUI:
    """
    Main window.

    Home tab: timer, Start/Stop Focus button, camera preview, per-class
    probabilities and the "Camera not working" message.
    Scoreboard tab: ranked session history, summary and PDF export.

    The Tk root doubles as the engine's scheduler, so every engine callback
    already runs on the UI thread.
    """

    def __init__(
        self,
        feed: Optional[ClassificationFeed] = None,
        store: Optional[LedgerStore] = None
    ):
        """
        Args:
            feed: Classification feed (defaults to the configured camera feed)
            store: Ledger store (defaults to the JSON file in config.LEDGER_FILE)
        """
        ctk.set_appearance_mode("light")

        self.root = ctk.CTk()
        self.root.title("Focus Session Tracker")
        self.root.configure(fg_color=COLORS["bg"])

        self.root.update_idletasks()
        x = (self.root.winfo_screenwidth() - WINDOW_WIDTH) // 2
        y = (self.root.winfo_screenheight() - WINDOW_HEIGHT) // 2
        self.root.geometry(f"{WINDOW_WIDTH}x{WINDOW_HEIGHT}+{x}+{y}")
        self.root.minsize(WINDOW_WIDTH, WINDOW_HEIGHT)

        self.feed = feed or create_classification_feed()
        self.engine = FocusEngine(SessionContext(
            feed=self.feed,
            store=store or JsonLedgerStore(),
            scheduler=self.root,
        ))
        self.engine.on_state_change = self._on_state_change
        self.engine.on_session_ended = self._on_session_ended
        self.engine.on_error = self._on_error

        self._preview_image: Optional[ctk.CTkImage] = None
        self._placeholder = Image.new(
            "RGB", (config.PREVIEW_SIZE, config.PREVIEW_SIZE), COLORS["preview_placeholder"]
        )

        self._create_widgets()

        self._preview_task = PeriodicTask(
            self.root, config.FRAME_INTERVAL_MS, self._update_preview, name="Preview refresh"
        )

        self.root.bind("<Return>", lambda event: self._toggle_session())
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self._on_state_change(self.engine.snapshot())
        self._refresh_scoreboard()
        if self.engine.persistence_error:
            self._set_status("Saved scores could not be read", error=True)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _create_widgets(self):
        tabs = ctk.CTkTabview(
            self.root,
            fg_color=COLORS["bg"],
            segmented_button_fg_color=COLORS["nav"],
            segmented_button_selected_color=COLORS["button_start"],
            segmented_button_selected_hover_color=COLORS["button_start_hover"],
            text_color=COLORS["text_white"],
        )
        tabs.pack(fill="both", expand=True, padx=12, pady=12)

        home = tabs.add("Home")
        board = tabs.add("Scoreboard")

        # --- Home ---
        self.timer_label = TimerDisplay(home)
        self.timer_label.pack(pady=(24, 16))

        self.start_stop_btn = FocusButton(home, command=self._toggle_session)
        self.start_stop_btn.pack()

        self.preview_label = ctk.CTkLabel(home, text="")
        self.label_container = LabelContainer(home)

        self.error_label = ctk.CTkLabel(
            home,
            text="Camera not working",
            font=make_font("body"),
            text_color=COLORS["warning"]
        )

        self.status_label = ctk.CTkLabel(
            home,
            text="",
            font=make_font("small"),
            text_color=COLORS["text_secondary"]
        )
        self.status_label.pack(side="bottom", pady=8)

        # --- Scoreboard ---
        ctk.CTkLabel(
            board,
            text="Scoreboard",
            font=make_font("title"),
            text_color=COLORS["text_primary"]
        ).pack(anchor="w", pady=(8, 8))

        self.summary_label = ctk.CTkLabel(
            board,
            text="",
            font=make_font("small"),
            text_color=COLORS["text_secondary"],
            justify="left",
            anchor="w"
        )
        self.summary_label.pack(fill="x", anchor="w")

        self.scoreboard_list = ScoreboardList(board)
        self.scoreboard_list.pack(fill="both", expand=True, pady=8)

        self.export_btn = ctk.CTkButton(
            board,
            text="Export PDF",
            font=make_font("body"),
            fg_color=COLORS["button_start"],
            hover_color=COLORS["button_start_hover"],
            command=self._export_report
        )
        self.export_btn.pack(pady=(0, 8))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _toggle_session(self):
        if self.engine.is_active:
            self.engine.stop(config.STOP_MANUAL)
        else:
            self._set_status("")
            if self.engine.start():
                self._preview_task.start(initial_delay_ms=0)

    def _export_report(self):
        try:
            report_path = generate_scoreboard_report(self.engine.scores())
        except Exception as e:
            logger.error(f"Report generation failed: {e}")
            messagebox.showerror("Export Failed", f"Could not create the PDF:\n\n{e}")
            return
        self._set_status(f"Saved {report_path.name}")
        self._open_file(report_path)

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _on_state_change(self, snapshot: SessionSnapshot):
        self.timer_label.set_time(snapshot.elapsed_seconds, warning=snapshot.warning)
        self.start_stop_btn.set_active(snapshot.active)

        if snapshot.active:
            if not self.preview_label.winfo_ismapped():
                self.preview_label.pack(pady=(24, 8))
                self.label_container.pack()
            self.label_container.set_samples(snapshot.last_samples)
        else:
            self.preview_label.pack_forget()
            self.label_container.pack_forget()
            self.label_container.set_samples(None)

        if snapshot.active and snapshot.feed_error:
            if not self.error_label.winfo_ismapped():
                self.error_label.pack(pady=8)
        else:
            self.error_label.pack_forget()

    def _on_session_ended(self, record: ScoreRecord):
        self._preview_task.cancel()
        self._refresh_scoreboard()

        duration = format_duration(record.duration_seconds)
        if record.stop_reason == config.STOP_AUTO:
            self._set_status(
                f"Unfocused for {config.TERMINATE_THRESHOLD_SECONDS}s - session ended at {duration}",
                error=True
            )
        else:
            self._set_status(f"Session recorded: {duration}")

    def _on_error(self, error_type: str, message: str):
        if error_type == config.ERROR_LEDGER_PERSISTENCE:
            self._set_status("Score kept for now, but could not be saved", error=True)
        # Feed errors show through snapshot.feed_error

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _update_preview(self):
        frame = None
        latest_preview = getattr(self.feed, "latest_preview", None)
        if latest_preview is not None:
            frame = latest_preview()

        image = Image.fromarray(frame) if frame is not None else self._placeholder
        self._preview_image = ctk.CTkImage(
            light_image=image, size=(config.PREVIEW_SIZE, config.PREVIEW_SIZE)
        )
        self.preview_label.configure(image=self._preview_image)

    def _refresh_scoreboard(self):
        records = self.engine.scores()
        self.scoreboard_list.set_records(records)
        self.summary_label.configure(text=generate_summary_text(compute_statistics(records)))

    def _set_status(self, text: str, error: bool = False):
        self.status_label.configure(
            text=text,
            text_color=COLORS["warning"] if error else COLORS["text_secondary"]
        )

    def _open_file(self, filepath: Path):
        """
        Open a file with the system's default application.

        Args:
            filepath: Path to the file to open
        """
        try:
            if sys.platform == "darwin":  # macOS
                subprocess.run(["open", str(filepath)], check=True)
            elif sys.platform == "win32":  # Windows
                os.startfile(str(filepath))
            else:  # Linux
                subprocess.run(["xdg-open", str(filepath)], check=True)
        except Exception as e:
            logger.error(f"Failed to open file: {e}")

    def _on_close(self):
        """Handle window close event."""
        if self.engine.is_active:
            result = messagebox.askyesno(
                "Session Active",
                "A focus session is currently running.\n\n"
                "Stop the session and exit?\n"
                "(Its time will be added to the scoreboard)"
            )
            if not result:
                return
            self.engine.shutdown()

        self._preview_task.cancel()
        close = getattr(self.feed, "close", None)
        if close is not None:
            try:
                close()
            except Exception as e:
                logger.warning(f"Feed failed to close: {e}")

        self.root.destroy()

    def run(self):
        """Start the GUI application main loop."""
        logger.info("Starting Focus Session Tracker GUI")
        self.root.mainloop()


def main():
    """Entry point for the GUI application."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format=config.LOG_FORMAT
    )

    # Suppress noisy third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)

    if config.CLASSIFIER_PROVIDER == "openai" and not config.OPENAI_API_KEY:
        logger.warning("OpenAI API key not found - the camera feed will report itself unavailable")

    app = FocusGUI()
    app.run()


if __name__ == "__main__":
    main()
