"""
Cancellable periodic tasks and background dispatch on a single-threaded scheduler.

The scheduler is anything with tkinter's timer interface:

    after(delay_ms, callback) -> handle
    after_cancel(handle)

so the Tk root window drives the engine in the app, and tests drive it
with a manual clock.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Timer interface of a cooperative, single-threaded event loop."""

    def after(self, delay_ms: int, callback: Callable[[], None]) -> Any:
        ...

    def after_cancel(self, handle: Any) -> None:
        ...


class Dispatcher(Protocol):
    """Runs a blocking call and reports (result, error) back on the scheduler."""

    def submit(
        self,
        fn: Callable[[], Any],
        on_done: Callable[[Any, Optional[BaseException]], None]
    ) -> None:
        ...


class PeriodicTask:
    """
    Runs a callback every interval on a scheduler until cancelled.

    cancel() removes the pending timer and bumps a generation counter, so a
    callback that was already dequeued by the event loop when cancel() ran
    does nothing when it finally fires. After cancel() returns the callback
    is guaranteed not to run again for that start().
    """

    def __init__(self, scheduler: Scheduler, interval_ms: int, callback: Callable[[], None], name: str = "task"):
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.callback = callback
        self.name = name

        self._generation = 0
        self._handle: Any = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, initial_delay_ms: Optional[int] = None) -> None:
        """
        Start (or restart) the task.

        Args:
            initial_delay_ms: Delay before the first run (defaults to the interval)
        """
        self.cancel()
        self._running = True
        delay = self.interval_ms if initial_delay_ms is None else initial_delay_ms
        self._schedule(delay, self._generation)
        logger.debug(f"{self.name} started (every {self.interval_ms}ms)")

    def cancel(self) -> None:
        """Stop the task. Safe to call repeatedly or from inside the callback."""
        self._generation += 1
        if self._handle is not None:
            try:
                self.scheduler.after_cancel(self._handle)
            except Exception as e:
                # Tk raises if the window is already gone
                logger.debug(f"{self.name} after_cancel failed: {e}")
            self._handle = None
        if self._running:
            logger.debug(f"{self.name} cancelled")
        self._running = False

    def _schedule(self, delay_ms: int, generation: int) -> None:
        self._handle = self.scheduler.after(delay_ms, lambda: self._fire(generation))

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            # Stale timer from a cancelled run
            return

        self._handle = None
        try:
            self.callback()
        except Exception as e:
            logger.error(f"{self.name} callback failed: {e}")

        # The callback may have cancelled (or restarted) the task
        if generation == self._generation:
            self._schedule(self.interval_ms, generation)


class ThreadedDispatcher:
    """
    Runs blocking calls on a worker thread and delivers results on the scheduler.

    The completion callback receives (result, error) on the scheduler's
    thread, so everything it touches stays single-threaded.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler

    def submit(
        self,
        fn: Callable[[], Any],
        on_done: Callable[[Any, Optional[BaseException]], None]
    ) -> None:
        """
        Run fn in the background.

        Args:
            fn: Blocking call (e.g. feed.classify)
            on_done: Called as on_done(result, None) or on_done(None, error)
        """
        def worker():
            result = None
            error = None
            try:
                result = fn()
            except Exception as e:
                error = e
            try:
                self.scheduler.after(0, lambda: on_done(result, error))
            except Exception as e:
                # Scheduler torn down (window closed) while the call ran
                logger.debug(f"Dropping background result: {e}")

        threading.Thread(target=worker, daemon=True).start()
