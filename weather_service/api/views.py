"""REST API views for weather lookups and the job queue."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from django.conf import settings
from django.http import HttpResponse
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from weather_service.core.abstractions import WeatherFetcher
from weather_service.core.cache import ResultCache
from weather_service.core.context import CallContext, FaultSignal
from weather_service.core.exceptions import (
    Cancelled,
    FaultInjected,
    InvalidLocation,
    QueueUnavailable,
    SerializationError,
    UpstreamUnavailable,
)
from weather_service.core.metrics import get_metrics
from weather_service.core.providers.base import RequestConfig
from weather_service.core.providers.openmeteo import OpenMeteoFetcher
from weather_service.core.providers.simulated import SimulatedFetcher
from weather_service.core.services.weather_service import WeatherEngine
from weather_service.ingest.queue import JobQueue
from weather_service.ingest.schemas import Job


logger = logging.getLogger(__name__)


def build_fetcher() -> WeatherFetcher:
    if settings.WEATHER_UPSTREAM == "open-meteo":
        return OpenMeteoFetcher(
            latitude=settings.WEATHER_LATITUDE,
            longitude=settings.WEATHER_LONGITUDE,
            base_url=settings.WEATHER_UPSTREAM_URL,
            request_config=RequestConfig(timeout=settings.WEATHER_REQUEST_TIMEOUT),
        )
    return SimulatedFetcher()


@lru_cache(maxsize=1)
def get_weather_engine() -> WeatherEngine:
    return WeatherEngine(
        fetcher=build_fetcher(),
        cache=ResultCache(
            ttl=settings.WEATHER_CACHE_TTL,
            max_entries=settings.WEATHER_CACHE_MAX_ENTRIES,
        ),
        metrics=get_metrics(),
        max_attempts=settings.WEATHER_RETRY_ATTEMPTS,
        initial_delay=settings.WEATHER_RETRY_INITIAL_DELAY,
        single_flight=settings.WEATHER_SINGLE_FLIGHT,
    )


@lru_cache(maxsize=1)
def get_job_queue() -> JobQueue:
    return JobQueue.from_url(
        settings.REDIS_URL,
        name=settings.REDIS_QUEUE_NAME,
        pop_timeout=settings.QUEUE_POP_TIMEOUT,
    )


def _call_context(request) -> CallContext:
    ctx = getattr(request, "call_context", None)
    if ctx is not None:
        return ctx
    return CallContext(
        fault=FaultSignal.from_request(request.headers, request.GET),
        timeout=settings.WEATHER_REQUEST_TIMEOUT,
    )


def _parse_count(raw: Optional[str]) -> int:
    try:
        count = int(raw) if raw else settings.QUEUE_LOAD_DEFAULT_COUNT
    except ValueError:
        return settings.QUEUE_LOAD_DEFAULT_COUNT
    if count <= 0 or count > settings.QUEUE_LOAD_MAX_COUNT:
        return settings.QUEUE_LOAD_DEFAULT_COUNT
    return count


class HealthView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        return Response({"status": "up"}, status=status.HTTP_200_OK)


class MetricsView(APIView):
    """Prometheus text exposition of the service registry."""

    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        body, content_type = get_metrics().render()
        return HttpResponse(body, content_type=content_type)


class WeatherView(APIView):
    """Current weather for a location, served through the result cache."""

    permission_classes = [AllowAny]

    def get(self, request, location: str, *args, **kwargs):  # noqa: D401
        """Return the weather snapshot for ``location``."""
        ctx = _call_context(request)
        try:
            result = get_weather_engine().get_weather(location, ctx)
        except InvalidLocation as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except (FaultInjected, UpstreamUnavailable) as exc:
            logger.error("Weather lookup failed location=%s trace_id=%s error=%s", location, ctx.trace_id, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except Cancelled as exc:
            logger.warning("Weather lookup cancelled location=%s trace_id=%s error=%s", location, ctx.trace_id, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_504_GATEWAY_TIMEOUT)
        return Response(result.as_payload(), status=status.HTTP_200_OK)


class QueueLoadView(APIView):
    """Bulk-load lookup jobs, e.g. to exercise backlog-driven scaling."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        count = _parse_count(request.query_params.get("count"))
        fault = _call_context(request).fault.active
        location = (request.query_params.get("location") or "").strip() or settings.QUEUE_LOAD_DEFAULT_LOCATION
        queue = get_job_queue()
        jobs = [Job(location=location, fault=fault) for _ in range(count)]
        try:
            loaded = queue.push_many(jobs)
        except QueueUnavailable as exc:
            logger.error("Queue load failed queue=%s error=%s", queue.name, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except SerializationError as exc:
            return Response(
                {"detail": str(exc), "loaded": exc.enqueued},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response({"loaded": loaded, "fault": fault, "queue": queue.name}, status=status.HTTP_200_OK)


class QueueStatsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):
        queue = get_job_queue()
        try:
            length = queue.length()
        except QueueUnavailable as exc:
            logger.error("Queue stats failed queue=%s error=%s", queue.name, exc)
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response({"length": length, "queue": queue.name}, status=status.HTTP_200_OK)
