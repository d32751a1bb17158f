from __future__ import annotations

import threading
import time

import pytest

from weather_service.core.context import CallContext, FaultSignal
from weather_service.core.exceptions import Cancelled, DeadlineExceeded


@pytest.mark.parametrize(
    "headers, query, expected",
    [
        ({}, {}, FaultSignal.UNSET),
        ({"X-Chaos-Mode": "true"}, {}, FaultSignal.ON),
        ({"X-Fault-Injection": "1"}, {}, FaultSignal.ON),
        ({}, {"chaos": "TRUE"}, FaultSignal.ON),
        ({}, {"fault": "yes"}, FaultSignal.ON),
        ({"X-Chaos-Mode": "false"}, {}, FaultSignal.OFF),
        ({}, {"chaos": "nope"}, FaultSignal.OFF),
        ({"X-Chaos-Mode": "false"}, {"chaos": "true"}, FaultSignal.ON),
    ],
)
def test_fault_signal_from_request(headers, query, expected) -> None:
    assert FaultSignal.from_request(headers, query) is expected


def test_fault_signal_from_flag() -> None:
    assert FaultSignal.from_flag(None) is FaultSignal.UNSET
    assert FaultSignal.from_flag(False) is FaultSignal.OFF
    assert FaultSignal.from_flag(True) is FaultSignal.ON
    assert FaultSignal.ON.active
    assert not FaultSignal.UNSET.active


def test_cancel_propagates_to_children() -> None:
    parent = CallContext()
    child = parent.child(fault=FaultSignal.ON)

    parent.cancel("shutdown")

    assert child.done
    assert child.fault is FaultSignal.ON
    assert child.trace_id == parent.trace_id
    with pytest.raises(Cancelled, match="shutdown"):
        child.raise_if_done()


def test_cancelling_child_leaves_parent_running() -> None:
    parent = CallContext()
    child = parent.child()

    child.cancel()

    assert child.done
    assert not parent.done


def test_child_of_cancelled_parent_starts_cancelled() -> None:
    parent = CallContext()
    parent.cancel()

    assert parent.child().done


def test_wait_wakes_on_cancel() -> None:
    ctx = CallContext()
    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()

    started = time.monotonic()
    assert ctx.wait(5.0) is True
    assert time.monotonic() - started < 1.0
    timer.join()


def test_wait_returns_false_when_interval_elapses() -> None:
    assert CallContext().wait(0.01) is False


def test_deadline_ends_context() -> None:
    ctx = CallContext(timeout=0.02)

    assert ctx.wait(5.0) is True
    assert isinstance(ctx.error(), DeadlineExceeded)


def test_child_inherits_earliest_deadline() -> None:
    parent = CallContext(timeout=0.5)
    child = parent.child(timeout=10)

    assert child.deadline == parent.deadline
