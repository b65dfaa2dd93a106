"""
FocusEngine - drives a focus session from classification results.

Owns the session state machine, the unfocused dwell accumulator and the
score ledger. It has no UI dependencies; the GUI reads snapshot() /
scores() and subscribes through callbacks.

Callbacks:
    on_state_change(snapshot: SessionSnapshot)
    on_session_ended(record: ScoreRecord)
    on_error(error_type: str, message: str)

All engine methods must be called on the scheduler's thread. The only
work done elsewhere is feed.classify(), which the dispatcher runs in the
background and hands back on the scheduler.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import config
from camera.base_classifier import ClassificationFeed, ClassificationSample
from errors import LedgerPersistenceError, MissingClassError
from tracking.accumulator import DwellVerdict, UnfocusAccumulator
from tracking.ledger import LedgerStore, ScoreLedger, ScoreRecord
from tracking.scheduler import Dispatcher, PeriodicTask, Scheduler, ThreadedDispatcher
from tracking.session import SessionSnapshot, SessionState

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """
    Everything the engine talks to, injected in one place.

    dispatcher defaults to a ThreadedDispatcher on the scheduler.
    """
    feed: ClassificationFeed
    store: LedgerStore
    scheduler: Scheduler
    dispatcher: Optional[Dispatcher] = None
    clock: Callable[[], float] = time.monotonic
    wall_clock: Callable[[], datetime] = datetime.now


class FocusEngine:
    """
    Focus session state machine.

    Idle -> Running (-> Warning) -> Idle. A session ends either when the
    user stops it or when the subject stays unfocused past the termination
    threshold; both paths record the elapsed time in the ledger.

    Two periodic tasks run while a session is active: the 1 second
    stopwatch tick and the frame-cadence classification loop. stop()
    cancels both before returning, and every classification is tagged with
    the session it was requested in, so nothing from a finished session
    can touch the next one.
    """

    def __init__(
        self,
        context: SessionContext,
        accumulator: Optional[UnfocusAccumulator] = None,
        tick_ms: int = config.SESSION_TICK_MS,
        frame_interval_ms: int = config.FRAME_INTERVAL_MS
    ) -> None:
        """
        Args:
            context: Injected collaborators
            accumulator: Dwell accumulator (defaults to config thresholds on context.clock)
            tick_ms: Stopwatch interval
            frame_interval_ms: Classification loop interval
        """
        self.context = context
        self.state = SessionState()
        self.accumulator = accumulator or UnfocusAccumulator(clock=context.clock)
        self.ledger = ScoreLedger(context.store)
        self.dispatcher: Dispatcher = context.dispatcher or ThreadedDispatcher(context.scheduler)

        self._tick_task = PeriodicTask(context.scheduler, tick_ms, self.tick, name="Session tick")
        self._frame_task = PeriodicTask(
            context.scheduler, frame_interval_ms, self._request_classification, name="Classification loop"
        )

        # Incremented on every start/stop; classifications from older tokens are stale
        self._session_token: int = 0
        self._classification_in_flight: bool = False

        # Observable error flags
        self.feed_error: bool = False
        self.persistence_error: bool = False
        self.last_samples: Optional[List[ClassificationSample]] = None

        # ---- Callbacks (set by the UI) ----
        self.on_state_change: Optional[Callable[[SessionSnapshot], None]] = None
        self.on_session_ended: Optional[Callable[[ScoreRecord], None]] = None
        self.on_error: Optional[Callable[[str, str], None]] = None

        self._load_ledger()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.state.active

    @property
    def classification_in_flight(self) -> bool:
        return self._classification_in_flight

    def start(self) -> bool:
        """
        Start a new focus session.

        Returns:
            True if a session started, False if one was already running
        """
        if self.state.active:
            logger.debug("start() ignored - session already running")
            return False

        self._session_token += 1
        self.state.begin()
        self.accumulator.reset()
        self.last_samples = None
        self.feed_error = False

        try:
            self.context.feed.start()
        except Exception as e:
            # Keep the session running; frames count as focused until the feed works
            self._report_feed_error(config.ERROR_FEED_UNAVAILABLE, str(e))

        self._tick_task.start()
        self._frame_task.start(initial_delay_ms=0)

        logger.info("Focus session started")
        self._notify_state_change()
        return True

    def stop(self, reason: str = config.STOP_MANUAL) -> Optional[ScoreRecord]:
        """
        End the running session and record it.

        Args:
            reason: config.STOP_MANUAL or config.STOP_AUTO

        Returns:
            The recorded ScoreRecord, or None if no session was running
        """
        if not self.state.active:
            logger.debug("stop() ignored - no session running")
            return None

        # Cancel before anything else so no tick or frame lands mid-teardown
        self._tick_task.cancel()
        self._frame_task.cancel()
        self._session_token += 1

        record = ScoreRecord(
            duration_seconds=self.state.elapsed_seconds,
            ended_at=self.context.wall_clock(),
            stop_reason=reason,
        )

        self.state.reset()
        self.accumulator.reset()
        self.last_samples = None
        self.feed_error = False

        try:
            self.context.feed.stop()
        except Exception as e:
            logger.warning(f"Feed failed to stop cleanly: {e}")

        try:
            self.ledger.append(record)
            self.persistence_error = False
        except LedgerPersistenceError as e:
            self._report_persistence_error(str(e))

        logger.info(f"Focus session ended ({reason}) after {record.duration_seconds}s")

        self._emit(self.on_session_ended, record)
        self._notify_state_change()
        return record

    def toggle(self) -> Optional[ScoreRecord]:
        """Start when idle, stop (manually) when running."""
        if self.state.active:
            return self.stop(config.STOP_MANUAL)
        self.start()
        return None

    def tick(self) -> None:
        """Advance the stopwatch by one second."""
        if not self.state.active:
            return
        self.state.elapsed_seconds += 1
        self._notify_state_change()

    def process_samples(self, samples: Optional[List[ClassificationSample]]) -> DwellVerdict:
        """
        Apply one frame's classification to the running session.

        Args:
            samples: Samples for the frame, or None if the feed had no result

        Returns:
            The accumulator's verdict (FOCUSED when idle)
        """
        if not self.state.active:
            logger.debug("Samples ignored - no session running")
            return DwellVerdict.FOCUSED

        self.last_samples = list(samples) if samples is not None else None

        try:
            verdict = self.accumulator.observe(samples, self.state)
        except MissingClassError as e:
            self._report_feed_error(config.ERROR_MISSING_CLASS, str(e))
            verdict = DwellVerdict.FOCUSED
        else:
            if samples is not None:
                self._clear_feed_error()

        if verdict == DwellVerdict.TERMINATE:
            self.stop(config.STOP_AUTO)
            return verdict

        self._notify_state_change()
        return verdict

    def snapshot(self) -> SessionSnapshot:
        """Current state for display."""
        return SessionSnapshot.of(
            self.state,
            feed_error=self.feed_error,
            persistence_error=self.persistence_error,
            last_samples=self.last_samples,
        )

    def scores(self) -> Tuple[ScoreRecord, ...]:
        """Ledger snapshot in rank order."""
        return self.ledger.all()

    def shutdown(self) -> Optional[ScoreRecord]:
        """Stop (and record) any running session before the app exits."""
        return self.stop(config.STOP_MANUAL) if self.state.active else None

    # ------------------------------------------------------------------
    # Classification loop
    # ------------------------------------------------------------------

    def _request_classification(self) -> None:
        if not self.state.active:
            return

        if self._classification_in_flight:
            # Previous frame still classifying - drop this one
            return

        self._classification_in_flight = True
        token = self._session_token
        self.dispatcher.submit(
            self.context.feed.classify,
            lambda result, error: self._on_classified(token, result, error)
        )

    def _on_classified(
        self,
        token: int,
        samples: Optional[List[ClassificationSample]],
        error: Optional[BaseException]
    ) -> None:
        self._classification_in_flight = False

        if token != self._session_token or not self.state.active:
            logger.debug("Discarding classification from a finished session")
            return

        if error is not None:
            self._report_feed_error(config.ERROR_FEED_UNAVAILABLE, str(error))
            samples = None

        self.process_samples(samples)

    # ------------------------------------------------------------------
    # Errors and notifications
    # ------------------------------------------------------------------

    def _load_ledger(self) -> None:
        try:
            self.ledger.load()
        except LedgerPersistenceError as e:
            self._report_persistence_error(str(e))

    def _report_feed_error(self, error_type: str, message: str) -> None:
        if self.feed_error:
            return
        self.feed_error = True
        logger.warning(f"Classification feed unavailable ({error_type}): {message}")
        self._emit(self.on_error, error_type, message)

    def _clear_feed_error(self) -> None:
        if self.feed_error:
            logger.info("Classification feed recovered")
            self.feed_error = False

    def _report_persistence_error(self, message: str) -> None:
        self.persistence_error = True
        logger.warning(f"Score ledger not persisted: {message}")
        self._emit(self.on_error, config.ERROR_LEDGER_PERSISTENCE, message)

    def _notify_state_change(self) -> None:
        self._emit(self.on_state_change, self.snapshot())

    def _emit(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Engine callback failed: {e}")
