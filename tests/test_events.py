import threading

import pytest

from captionkit.playback.events import EventEmitter
from captionkit.playback.scheduler import ThreadingScheduler


def test_subscribe_emit_and_dispose():
    emitter = EventEmitter()
    seen = []
    dispose = emitter.subscribe("timeupdate", seen.append)

    emitter.emit("timeupdate", 1.5)
    dispose()
    dispose()
    emitter.emit("timeupdate", 2.0)

    assert seen == [1.5]
    assert emitter.handler_count("timeupdate") == 0


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        EventEmitter().subscribe("seeking", lambda: None)


def test_failing_handler_does_not_block_others():
    emitter = EventEmitter()
    seen = []

    def broken():
        raise RuntimeError("boom")

    emitter.subscribe("ready", broken)
    emitter.subscribe("ready", lambda: seen.append("ok"))
    emitter.emit("ready")

    assert seen == ["ok"]


def test_threading_scheduler_runs_and_cancels():
    scheduler = ThreadingScheduler()
    fired = threading.Event()
    skipped = []

    scheduler.call_later(0.01, fired.set)
    handle = scheduler.call_later(0.05, skipped.append, 1)
    handle.cancel()

    assert fired.wait(2.0)
    assert handle.cancelled
    assert skipped == []


def test_threading_scheduler_reuses_one_thread():
    scheduler = ThreadingScheduler()
    threads = []
    done = threading.Event()

    def tick(remaining):
        threads.append(threading.current_thread())
        if remaining:
            scheduler.call_later(0.001, tick, remaining - 1)
        else:
            done.set()

    scheduler.call_later(0.0, tick, 20)

    assert done.wait(5.0)
    assert len(threads) == 21
    assert set(threads) == {scheduler.thread}
    scheduler.close()
    scheduler.thread.join(2.0)
    assert not scheduler.thread.is_alive()


def test_threading_scheduler_survives_failing_callback():
    scheduler = ThreadingScheduler()
    fired = threading.Event()

    def broken():
        raise RuntimeError("boom")

    scheduler.call_later(0.0, broken)
    scheduler.call_later(0.01, fired.set)

    assert fired.wait(2.0)
    scheduler.close()
