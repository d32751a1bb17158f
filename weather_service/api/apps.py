from __future__ import annotations

from pathlib import Path

from django.apps import AppConfig


class WeatherApiConfig(AppConfig):
    name = "weather_service.api"
    label = "weather_api"
    # Namespace package: Django cannot infer a single filesystem location.
    path = str(Path(__file__).resolve().parent)
