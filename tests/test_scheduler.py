import threading

from tracking.scheduler import PeriodicTask, ThreadedDispatcher

from conftest import LeakyScheduler, ManualScheduler


def test_runs_every_interval():
    scheduler = ManualScheduler()
    calls = []
    task = PeriodicTask(scheduler, 1000, lambda: calls.append(scheduler.now_ms))

    task.start()
    scheduler.advance(3_500)

    assert calls == [1000, 2000, 3000]
    assert task.is_running


def test_initial_delay():
    scheduler = ManualScheduler()
    calls = []
    task = PeriodicTask(scheduler, 100, lambda: calls.append(scheduler.now_ms))

    task.start(initial_delay_ms=0)
    scheduler.advance(250)

    assert calls == [0, 100, 200]


def test_cancel_stops_future_runs():
    scheduler = ManualScheduler()
    calls = []
    task = PeriodicTask(scheduler, 1000, lambda: calls.append(1))
    task.start()
    scheduler.advance(2_000)

    task.cancel()
    task.cancel()
    scheduler.advance(5_000)

    assert len(calls) == 2
    assert not task.is_running
    assert scheduler.pending == 0


def test_cancel_from_inside_callback():
    scheduler = ManualScheduler()
    calls = []

    def callback():
        calls.append(1)
        task.cancel()

    task = PeriodicTask(scheduler, 1000, callback)
    task.start()
    scheduler.advance(5_000)

    assert calls == [1]


def test_stale_timer_is_ignored_when_cancel_misses():
    scheduler = LeakyScheduler()
    calls = []
    task = PeriodicTask(scheduler, 1000, lambda: calls.append(1))
    task.start()
    task.cancel()

    scheduler.advance(3_000)

    assert calls == []
    assert scheduler.pending == 0


def test_restart_drops_old_schedule():
    scheduler = LeakyScheduler()
    calls = []
    task = PeriodicTask(scheduler, 1000, lambda: calls.append(scheduler.now_ms))
    task.start()
    scheduler.advance(500)
    task.start()

    scheduler.advance(1_600)

    assert calls == [1500]


def test_failing_callback_keeps_task_alive():
    scheduler = ManualScheduler()
    calls = []

    def callback():
        calls.append(1)
        raise RuntimeError("boom")

    task = PeriodicTask(scheduler, 100, callback)
    task.start()
    scheduler.advance(300)

    assert len(calls) == 3


class RecordingScheduler:
    """Collects callbacks posted from worker threads."""

    def __init__(self):
        self.posted = []
        self.event = threading.Event()

    def after(self, delay_ms, callback):
        self.posted.append((delay_ms, callback))
        self.event.set()

    def after_cancel(self, handle):
        pass


def test_dispatcher_posts_result_back_to_scheduler():
    scheduler = RecordingScheduler()
    results = []

    ThreadedDispatcher(scheduler).submit(lambda: 42, lambda result, error: results.append((result, error)))

    assert scheduler.event.wait(timeout=5)
    # Nothing runs until the scheduler does
    assert results == []

    delay, callback = scheduler.posted[0]
    callback()
    assert delay == 0
    assert results == [(42, None)]


def test_dispatcher_delivers_errors():
    scheduler = RecordingScheduler()
    results = []

    def fail():
        raise OSError("camera unplugged")

    ThreadedDispatcher(scheduler).submit(fail, lambda result, error: results.append((result, error)))

    assert scheduler.event.wait(timeout=5)
    scheduler.posted[0][1]()

    result, error = results[0]
    assert result is None
    assert isinstance(error, OSError)
