"""Per-call context: fault signal, cancellation and deadline."""
from __future__ import annotations

import enum
import threading
import time
import uuid
import weakref
from typing import Mapping, Optional

from weather_service.core.exceptions import Cancelled, DeadlineExceeded


_TRUTHY = {"true", "1", "yes"}

FAULT_HEADERS = ("X-Chaos-Mode", "X-Fault-Injection")
FAULT_QUERY_PARAMS = ("chaos", "fault")


class FaultSignal(enum.Enum):
    """Three-state request-scoped fault flag."""

    UNSET = "unset"
    OFF = "off"
    ON = "on"

    @property
    def active(self) -> bool:
        return self is FaultSignal.ON

    @classmethod
    def from_flag(cls, value: Optional[bool]) -> "FaultSignal":
        if value is None:
            return cls.UNSET
        return cls.ON if value else cls.OFF

    @classmethod
    def from_request(
        cls,
        headers: Mapping[str, str],
        query: Mapping[str, str],
    ) -> "FaultSignal":
        """Build the signal from HTTP headers and query parameters.

        Any source set to a truthy string turns the fault on. A source present
        with another value turns it off; no source at all leaves it unset.
        """

        seen = False
        for name in FAULT_HEADERS:
            value = headers.get(name)
            if value is None:
                continue
            seen = True
            if value.strip().lower() in _TRUTHY:
                return cls.ON
        for name in FAULT_QUERY_PARAMS:
            value = query.get(name)
            if value is None:
                continue
            seen = True
            if value.strip().lower() in _TRUTHY:
                return cls.ON
        return cls.OFF if seen else cls.UNSET


class CallContext:
    """Explicit call options threaded through the engine, queue and loops.

    A context can be cancelled directly, by its deadline, or by its parent.
    Blocking points wait on :meth:`wait` so that cancellation wakes them.
    """

    def __init__(
        self,
        *,
        fault: FaultSignal = FaultSignal.UNSET,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        trace_id: Optional[str] = None,
    ) -> None:
        self.fault = fault
        self.trace_id = trace_id or uuid.uuid4().hex
        if timeout is not None:
            candidate = time.monotonic() + timeout
            deadline = candidate if deadline is None else min(deadline, candidate)
        self.deadline = deadline
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._children: "weakref.WeakSet[CallContext]" = weakref.WeakSet()

    @classmethod
    def background(cls) -> "CallContext":
        return cls()

    # -- derivation ---------------------------------------------------------
    def child(
        self,
        *,
        fault: Optional[FaultSignal] = None,
        timeout: Optional[float] = None,
    ) -> "CallContext":
        ctx = CallContext(
            fault=self.fault if fault is None else fault,
            timeout=timeout,
            deadline=self.deadline,
            trace_id=self.trace_id,
        )
        with self._lock:
            if not self._event.is_set():
                self._children.add(ctx)
                return ctx
        ctx.cancel(self._reason)
        return ctx

    # -- cancellation -------------------------------------------------------
    def cancel(self, reason: Optional[str] = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel(reason)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def error(self) -> Cancelled:
        if self.cancelled:
            return Cancelled(self._reason)
        if self.expired:
            return DeadlineExceeded()
        return Cancelled(self._reason)

    def raise_if_done(self) -> None:
        if self.done:
            raise self.error()

    def wait(self, seconds: float) -> bool:
        """Sleep for ``seconds`` unless the context ends first.

        Returns True when the context is done.
        """

        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            return True
        self._event.wait(max(0.0, seconds))
        return self.done

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"CallContext(fault={self.fault.value}, trace_id={self.trace_id}, done={self.done})"


__all__ = ["CallContext", "FaultSignal", "FAULT_HEADERS", "FAULT_QUERY_PARAMS"]
