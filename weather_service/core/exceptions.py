"""Error taxonomy shared by the engine, the queue and the HTTP layer."""
from __future__ import annotations

from typing import Optional


class WeatherServiceError(RuntimeError):
    """Base class for failures surfaced by the weather engine."""


class FaultInjected(WeatherServiceError):
    """The call was short-circuited by an explicit fault signal."""

    def __init__(self, location: str) -> None:
        super().__init__(f"simulated upstream failure for {location!r}")
        self.location = location


class InvalidLocation(WeatherServiceError, ValueError):
    """The requested location is empty once normalized."""


class UpstreamError(WeatherServiceError):
    """A single upstream fetch attempt failed and may be retried."""


class UpstreamUnavailable(WeatherServiceError):
    """The upstream could not produce a result for this call."""


class RetriesExhausted(UpstreamUnavailable):
    """Every permitted fetch attempt failed."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"max retries reached after {attempts} attempts")
        self.attempts = attempts


class Cancelled(WeatherServiceError):
    """The governing call context was cancelled."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or "context cancelled")
        self.reason = reason


class DeadlineExceeded(Cancelled):
    """The governing call context ran past its deadline."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or "context deadline exceeded")


class QueueError(RuntimeError):
    """Base class for job queue failures."""


class QueueUnavailable(QueueError):
    """The backing queue store could not be reached."""


class SerializationError(QueueError):
    """A job could not be encoded or decoded.

    ``enqueued`` carries the number of jobs pushed before the failure when the
    error comes from a bulk push.
    """

    def __init__(self, message: str, *, enqueued: int = 0) -> None:
        super().__init__(message)
        self.enqueued = enqueued


__all__ = [
    "Cancelled",
    "DeadlineExceeded",
    "FaultInjected",
    "InvalidLocation",
    "QueueError",
    "QueueUnavailable",
    "RetriesExhausted",
    "SerializationError",
    "UpstreamError",
    "UpstreamUnavailable",
    "WeatherServiceError",
]
