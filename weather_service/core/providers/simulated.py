"""In-process upstream used when no real weather API is configured."""
from __future__ import annotations

from weather_service.core.abstractions import WeatherResult
from weather_service.core.context import CallContext


class SimulatedFetcher:
    """Deterministic stand-in for an external dependency call."""

    name = "simulated"

    def __init__(
        self,
        temperature: float = 72.0,
        conditions: str = "Sunny",
        humidity: float = 40.0,
        wind_speed: float = 10.0,
    ) -> None:
        self._result = WeatherResult(
            temperature=temperature,
            conditions=conditions,
            humidity=humidity,
            wind_speed=wind_speed,
        )

    def fetch(self, ctx: CallContext) -> WeatherResult:
        ctx.raise_if_done()
        return self._result


__all__ = ["SimulatedFetcher"]
