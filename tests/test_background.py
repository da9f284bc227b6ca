"""
Background writer tests: retry, terminal failure logging, draining
"""
import logging
import threading

from app.cache import BackgroundWriter
from app.cache.background import get_background_writer, shutdown_background_writer


class Flaky:
    """Fails (returns False) a fixed number of times, then succeeds."""

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, *args):
        with self._lock:
            self.calls += 1
            return self.calls > self.failures


def test_task_runs_off_thread(writer):
    done = threading.Event()
    writer.submit("set-event", done.set)
    assert writer.wait_idle(timeout=5)
    assert done.is_set()


def test_false_result_is_retried_until_success(writer):
    task = Flaky(failures=2)
    writer.submit("flaky", task)
    assert writer.wait_idle(timeout=5)
    assert task.calls == 3
    assert writer.get_stats()["succeeded"] == 1


def test_exception_is_retried(writer):
    calls = []

    def sometimes_raises():
        calls.append(1)
        if len(calls) == 1:
            raise ConnectionError("transient")
        return True

    writer.submit("raises-once", sometimes_raises)
    assert writer.wait_idle(timeout=5)
    assert len(calls) == 2


def test_terminal_failure_is_logged(writer, caplog):
    task = Flaky(failures=10)
    with caplog.at_level(logging.ERROR, logger="cache.background"):
        writer.submit("always-fails", task)
        assert writer.wait_idle(timeout=5)

    assert task.calls == 3
    assert writer.get_stats()["failed"] == 1
    assert "always-fails" in caplog.text


def test_no_retry_runs_once(writer, caplog):
    task = Flaky(failures=10)
    with caplog.at_level(logging.ERROR, logger="cache.background"):
        writer.submit("hit-count", task, retry=False)
        assert writer.wait_idle(timeout=5)
    assert task.calls == 1
    assert "hit-count" in caplog.text


def test_arguments_are_passed_through():
    bg = BackgroundWriter(max_workers=1, backoff_seconds=0)
    received = []
    bg.submit("args", lambda a, b: received.append((a, b)), 1, "two")
    assert bg.wait_idle(timeout=5)
    bg.shutdown()
    assert received == [(1, "two")]


def test_global_writer_is_recreated_after_shutdown():
    first = get_background_writer()
    shutdown_background_writer()

    second = get_background_writer()
    try:
        assert second is not first
        done = threading.Event()
        second.submit("after-restart", done.set)
        assert second.wait_idle(timeout=5)
        assert done.is_set()
    finally:
        shutdown_background_writer()
