"""Tests for bounded service calls."""

import logging
import threading
import time

import pytest
from lab_summarizer.errors import PipelineCancelled, StageTimeout
from lab_summarizer.timeouts import call_with_timeout, current_abandon_event


def test_result_is_returned_within_budget():
    assert call_with_timeout(lambda a, b: a + b, 2, 3, timeout=1.0) == 5


def test_service_exception_propagates():
    def fail():
        raise ConnectionError("backend down")

    with pytest.raises(ConnectionError, match="backend down"):
        call_with_timeout(fail, timeout=1.0)


def test_no_abandon_event_outside_a_call():
    assert current_abandon_event() is None


def test_timeout_sets_abandon_event_seen_by_the_call():
    stopped = threading.Event()

    def cooperative():
        event = current_abandon_event()
        assert event is not None
        while not event.is_set():
            time.sleep(0.01)
        stopped.set()

    start = time.monotonic()
    with pytest.raises(StageTimeout, match="timed out after 0.1s"):
        call_with_timeout(cooperative, timeout=0.1, label="normalization")
    assert time.monotonic() - start < 1.0
    assert stopped.wait(1.0)


def test_late_failure_of_abandoned_call_is_logged(caplog):
    finished = threading.Event()

    def slow_failure():
        time.sleep(0.3)
        try:
            raise RuntimeError("CUDA out of memory")
        finally:
            finished.set()

    caplog.set_level(logging.INFO, logger="lab_summarizer.timeouts")
    with pytest.raises(StageTimeout):
        call_with_timeout(slow_failure, timeout=0.05, label="summarization")
    assert finished.wait(2.0)

    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        if any("abandoned summarization ended" in r.getMessage() for r in caplog.records):
            break
        time.sleep(0.02)
    messages = [r.getMessage() for r in caplog.records]
    assert any("RuntimeError: CUDA out of memory" in m for m in messages)


def test_late_result_of_cancelled_call_is_logged(caplog):
    cancel = threading.Event()
    threading.Timer(0.05, cancel.set).start()

    caplog.set_level(logging.INFO, logger="lab_summarizer.timeouts")
    with pytest.raises(PipelineCancelled):
        call_with_timeout(
            lambda: time.sleep(0.3) or "late", timeout=5.0, cancel_event=cancel, label="judgment"
        )

    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        if any("result discarded" in r.getMessage() for r in caplog.records):
            break
        time.sleep(0.02)
    assert any(
        "abandoned judgment finished" in r.getMessage() for r in caplog.records
    )


def test_calls_do_not_wait_on_each_other():
    """A dozen hung calls leave room for an immediate one."""
    release = threading.Event()
    for _ in range(12):
        with pytest.raises(StageTimeout):
            call_with_timeout(release.wait, 5.0, timeout=0.01)
    try:
        assert call_with_timeout(lambda: "ok", timeout=0.5) == "ok"
    finally:
        release.set()
