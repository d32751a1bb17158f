"""Core abstractions for the weather domain."""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, Mapping, Optional, Protocol

from weather_service.core.context import CallContext


@dataclass(frozen=True)
class WeatherResult:
    """Normalized weather snapshot.

    ``served_from_cache`` is decided when the result is read: the copy kept in
    the cache is always stored with ``False``.
    """

    temperature: float
    conditions: str
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    served_from_cache: bool = False

    def as_cached(self) -> "WeatherResult":
        return replace(self, served_from_cache=True)

    def as_fresh(self) -> "WeatherResult":
        return replace(self, served_from_cache=False)

    def as_payload(self) -> Dict[str, object]:
        return asdict(self)


class WeatherFetcher(Protocol):
    """A single upstream call producing one weather snapshot."""

    name: str

    def fetch(self, ctx: CallContext) -> WeatherResult:
        """Perform one attempt; raise ``UpstreamError`` on failure."""
        ...


class MetricsSink(Protocol):
    """Write-only observability sink injected into components."""

    def increment_counter(self, name: str, labels: Optional[Mapping[str, str]] = None) -> None:
        ...

    def observe_histogram(self, name: str, labels: Optional[Mapping[str, str]], value: float) -> None:
        ...

    def set_gauge(self, name: str, value: float) -> None:
        ...


__all__ = ["MetricsSink", "WeatherFetcher", "WeatherResult"]
