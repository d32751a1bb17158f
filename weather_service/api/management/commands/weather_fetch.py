"""Management command to fetch weather using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from weather_service.api.views import get_weather_engine
from weather_service.core.context import CallContext, FaultSignal
from weather_service.core.exceptions import WeatherServiceError


class Command(BaseCommand):
    help = "Fetch current weather for the provided location"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("location", type=str, help="Location identifier")
        parser.add_argument("--fault", action="store_true", help="Inject a synthetic upstream failure")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        ctx = CallContext(
            fault=FaultSignal.from_flag(options["fault"] or None),
            timeout=settings.WEATHER_REQUEST_TIMEOUT,
        )
        try:
            result = get_weather_engine().get_weather(options["location"], ctx)
        except WeatherServiceError as exc:
            raise CommandError(f"Weather lookup failed: {exc}") from exc

        self.stdout.write(json.dumps(result.as_payload()))
