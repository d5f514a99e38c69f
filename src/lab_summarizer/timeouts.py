"""Bounded waits for external service calls.

Every call runs on its own daemon thread, so a call that hangs never delays
another run. When the waiter gives up (timeout or cancellation) it sets the
call's abandon event; backends that can stop early read it through
``current_abandon_event()``. Whatever an abandoned call eventually returns or
raises is logged, never silently dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Callable, TypeVar

from lab_summarizer.errors import PipelineCancelled, StageTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# How often a waiting stage checks its cancellation event.
POLL_INTERVAL = 0.05

_local = threading.local()


def current_abandon_event() -> threading.Event | None:
    """Abandon event of the service call running on this thread, if any."""
    return getattr(_local, "abandon_event", None)


def _run_call(
    future: Future, abandon: threading.Event, fn: Callable[..., T], args: tuple
) -> None:
    _local.abandon_event = abandon
    if not future.set_running_or_notify_cancel():
        return
    try:
        result = fn(*args)
    except BaseException as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)


def _observe_abandoned(label: str, started: float) -> Callable[[Future], None]:
    def observe(future: Future) -> None:
        elapsed = time.monotonic() - started
        exc = future.exception()
        if exc is not None:
            logger.info(
                "timeouts: abandoned %s ended after %.2fs with %s: %s",
                label,
                elapsed,
                type(exc).__name__,
                exc,
            )
        else:
            logger.info(
                "timeouts: abandoned %s finished after %.2fs, result discarded",
                label,
                elapsed,
            )

    return observe


def call_with_timeout(
    fn: Callable[..., T],
    *args: object,
    timeout: float,
    cancel_event: threading.Event | None = None,
    label: str = "service call",
) -> T:
    """Run ``fn(*args)`` on a dedicated thread and wait at most ``timeout`` seconds.

    Raises StageTimeout when the budget runs out and PipelineCancelled as soon
    as ``cancel_event`` is set. In both cases the call is abandoned: its
    abandon event is set and its late outcome is logged.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelled(f"{label} cancelled before it started")

    future: Future = Future()
    abandon = threading.Event()
    worker = threading.Thread(
        target=_run_call,
        args=(future, abandon, fn, args),
        name=f"lab-service-{label}",
        daemon=True,
    )
    started = time.monotonic()
    deadline = started + timeout
    worker.start()

    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            _abandon(future, abandon, label, started)
            logger.warning("timeouts: %s exceeded %gs", label, timeout)
            raise StageTimeout(f"{label} timed out after {timeout:g}s")

        step = remaining if cancel_event is None else min(remaining, POLL_INTERVAL)
        done, _ = wait([future], timeout=step, return_when=FIRST_COMPLETED)
        if done:
            return future.result()

        if cancel_event is not None and cancel_event.is_set():
            _abandon(future, abandon, label, started)
            logger.info("timeouts: %s abandoned on cancellation", label)
            raise PipelineCancelled(f"{label} cancelled")


def _abandon(future: Future, abandon: threading.Event, label: str, started: float) -> None:
    abandon.set()
    future.add_done_callback(_observe_abandoned(label, started))
