"""Shared fixtures: a deterministic scheduler, fake feeds and stores."""

import heapq
import itertools
from datetime import datetime
from typing import Callable, List, Optional

import pytest

import config
from camera.base_classifier import ClassificationSample
from errors import LedgerPersistenceError
from tracking.engine import FocusEngine, SessionContext
from tracking.ledger import ScoreRecord

FIXED_NOW = datetime(2024, 5, 1, 9, 30, 0)


def samples(unfocused: float) -> List[ClassificationSample]:
    """Two-class frame result with the given unfocused probability."""
    return [
        ClassificationSample(config.FOCUSED_LABEL, round(1.0 - unfocused, 6)),
        ClassificationSample(config.UNFOCUSED_LABEL, unfocused),
    ]


class ManualScheduler:
    """
    tkinter-style after/after_cancel driven by advance().

    Timers fire in due-time order, FIFO for equal due times. now_ms only
    moves inside advance().
    """

    def __init__(self):
        self.now_ms = 0
        self._queue = []
        self._handles = itertools.count(1)
        self._cancelled = set()

    def after(self, delay_ms, callback):
        handle = next(self._handles)
        heapq.heappush(self._queue, (self.now_ms + delay_ms, handle, callback))
        return handle

    def after_cancel(self, handle):
        self._cancelled.add(handle)

    def advance(self, ms: int = 0):
        target = self.now_ms + ms
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self.now_ms = due
            callback()
        self.now_ms = target

    @property
    def pending(self) -> int:
        return sum(1 for _, handle, _ in self._queue if handle not in self._cancelled)

    def clock(self) -> float:
        return self.now_ms / 1000


class LeakyScheduler(ManualScheduler):
    """after_cancel never takes effect, like a timer already dequeued by the loop."""

    def after_cancel(self, handle):
        pass


class InlineDispatcher:
    """Runs the call immediately and reports on the spot."""

    def __init__(self):
        self.calls = 0

    def submit(self, fn, on_done):
        self.calls += 1
        try:
            result = fn()
        except Exception as e:
            on_done(None, e)
        else:
            on_done(result, None)


class DeferredDispatcher:
    """Holds calls until the test completes them, to simulate slow inference."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, on_done):
        self.pending.append((fn, on_done))

    def complete_next(self, result=None, error=None):
        fn, on_done = self.pending.pop(0)
        on_done(result, error)


class ScriptedFeed:
    """
    Feed whose classify() returns script(now_seconds).

    script may return samples, None, or raise.
    """

    def __init__(self, script: Callable[[float], Optional[List[ClassificationSample]]], clock: Callable[[], float]):
        self.script = script
        self.clock = clock
        self.started = 0
        self.stopped = 0
        self.classify_calls = 0
        self.start_error: Optional[Exception] = None

    def start(self):
        self.started += 1
        if self.start_error is not None:
            raise self.start_error

    def stop(self):
        self.stopped += 1

    def classify(self):
        self.classify_calls += 1
        return self.script(self.clock())


class MemoryLedgerStore:
    def __init__(self, records=None):
        self.records = list(records or [])
        self.saves = 0

    def load_ledger(self):
        return list(self.records)

    def save_ledger(self, records):
        self.saves += 1
        self.records = list(records)


class FailingLedgerStore(MemoryLedgerStore):
    def __init__(self, fail_load=False, fail_save=True):
        super().__init__()
        self.fail_load = fail_load
        self.fail_save = fail_save

    def load_ledger(self):
        if self.fail_load:
            raise LedgerPersistenceError("disk unreadable")
        return super().load_ledger()

    def save_ledger(self, records):
        if self.fail_save:
            raise LedgerPersistenceError("disk full")
        super().save_ledger(records)


class EventRecorder:
    """Collects engine callbacks."""

    def __init__(self, engine: FocusEngine):
        self.snapshots = []
        self.ended: List[ScoreRecord] = []
        self.errors = []
        engine.on_state_change = self.snapshots.append
        engine.on_session_ended = self.ended.append
        engine.on_error = lambda error_type, message: self.errors.append((error_type, message))


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return MemoryLedgerStore()


@pytest.fixture
def make_engine(scheduler, store):
    """Build an engine on the manual scheduler with a scripted feed."""

    def _make(script=lambda now: None, dispatcher=None, store_override=None, sched=None):
        sched = sched or scheduler
        feed = ScriptedFeed(script, sched.clock)
        context = SessionContext(
            feed=feed,
            store=store_override or store,
            scheduler=sched,
            dispatcher=dispatcher or InlineDispatcher(),
            clock=sched.clock,
            wall_clock=lambda: FIXED_NOW,
        )
        engine = FocusEngine(context)
        return engine, feed, EventRecorder(engine)

    return _make
