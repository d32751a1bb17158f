"""Open-Meteo current conditions upstream."""
from __future__ import annotations

import math
from typing import Optional

from weather_service.core.abstractions import WeatherResult
from weather_service.core.context import CallContext
from weather_service.core.exceptions import UpstreamError
from weather_service.core.providers.base import UpstreamFetcher


# Subset of the WMO weather interpretation codes used by Open-Meteo.
WMO_CONDITIONS = {
    0: "Clear",
    1: "Mostly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    61: "Rain",
    63: "Rain",
    65: "Heavy Rain",
    71: "Snow",
    73: "Snow",
    75: "Heavy Snow",
    80: "Showers",
    81: "Showers",
    82: "Heavy Showers",
    95: "Thunderstorm",
    96: "Thunderstorm",
    99: "Thunderstorm",
}

DEFAULT_CONDITIONS = "Operational"


class OpenMeteoFetcher(UpstreamFetcher):
    """Current conditions for one configured station.

    The location never reaches the upstream call: every lookup reads the same
    coordinates.
    """

    name = "open-meteo"
    base_url = "https://api.open-meteo.com/v1/forecast"

    def __init__(
        self,
        latitude: float = 33.57,
        longitude: float = -101.85,
        base_url: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.latitude = latitude
        self.longitude = longitude
        self.base_url = base_url or self.base_url

    def fetch(self, ctx: CallContext) -> WeatherResult:
        params = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
        }
        response = self._request(ctx, "GET", self.base_url, params=params)
        data = self._json(response)
        current = data.get("current")
        if not isinstance(current, dict):
            raise UpstreamError("missing current weather")
        temperature = _safe_float(current.get("temperature_2m"))
        if temperature is None:
            raise UpstreamError("missing temperature")
        return WeatherResult(
            temperature=temperature,
            conditions=_conditions(current.get("weather_code")),
            humidity=_safe_float(current.get("relative_humidity_2m")),
            wind_speed=_safe_float(current.get("wind_speed_10m")),
        )


def _conditions(code: object) -> str:
    value = _safe_float(code)
    if value is None:
        return DEFAULT_CONDITIONS
    return WMO_CONDITIONS.get(int(value), DEFAULT_CONDITIONS)


def _safe_float(value: Optional[object]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


__all__ = ["OpenMeteoFetcher"]
