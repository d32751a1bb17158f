"""Request tracing, fault signal extraction and RED metrics."""
from __future__ import annotations

import logging
import time
import uuid
from http import HTTPStatus

from django.conf import settings

from weather_service.core.context import CallContext, FaultSignal
from weather_service.core.metrics import HTTP_REQUEST_DURATION, HTTP_REQUESTS, get_metrics


logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def metric_path(path: str) -> str:
    """Collapse per-location and per-action paths to bounded label values."""

    if path.startswith("/weather/"):
        return "/weather/:location"
    if path.startswith("/queue/"):
        return "/queue/:action"
    return path


def status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"


class ObservabilityMiddleware:
    def __init__(self, get_response) -> None:
        self.get_response = get_response

    def __call__(self, request):
        start = time.perf_counter()
        trace_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.call_context = CallContext(
            fault=FaultSignal.from_request(request.headers, request.GET),
            timeout=settings.WEATHER_REQUEST_TIMEOUT,
            trace_id=trace_id,
        )

        response = self.get_response(request)
        response[CORRELATION_HEADER] = trace_id

        duration = time.perf_counter() - start
        path = metric_path(request.path)
        metrics = get_metrics()
        metrics.increment_counter(
            HTTP_REQUESTS,
            {
                "path": path,
                "method": request.method,
                "code": str(response.status_code),
                "status_text": status_text(response.status_code),
            },
        )
        metrics.observe_histogram(HTTP_REQUEST_DURATION, {"path": path, "method": request.method}, duration)
        logger.info(
            "request completed trace_id=%s path=%s status=%s latency=%.6f",
            trace_id,
            request.path,
            response.status_code,
            duration,
        )
        return response
