from __future__ import annotations

import pytest
from django.test import Client
from redis.exceptions import ConnectionError as RedisConnectionError

from weather_service.api import views
from weather_service.core.context import CallContext
from weather_service.core.metrics import get_metrics
from weather_service.core.providers.simulated import SimulatedFetcher
from weather_service.core.services.weather_service import WeatherEngine


@pytest.fixture()
def engine(monkeypatch) -> WeatherEngine:
    engine = WeatherEngine(SimulatedFetcher(), metrics=get_metrics())
    monkeypatch.setattr(views, "get_weather_engine", lambda: engine)
    return engine


@pytest.fixture()
def queue(monkeypatch, job_queue):
    monkeypatch.setattr(views, "get_job_queue", lambda: job_queue)
    return job_queue


def _requests_total(path: str, code: str) -> float:
    value = get_metrics().registry.get_sample_value(
        "weather_service_http_requests_total",
        {"path": path, "method": "GET", "code": code, "status_text": "OK" if code == "200" else "Internal Server Error"},
    )
    return value or 0.0


def test_health_endpoint() -> None:
    response = Client().get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "up"}


def test_weather_endpoint_returns_payload_then_cached(engine) -> None:
    client = Client()

    first = client.get("/weather/austin")
    second = client.get("/weather/austin")

    assert first.status_code == 200
    payload = first.json()
    assert payload["temperature"] == 72.0
    assert payload["conditions"] == "Sunny"
    assert payload["served_from_cache"] is False
    assert second.json()["served_from_cache"] is True
    assert second.json()["temperature"] == payload["temperature"]


@pytest.mark.parametrize(
    "path, headers",
    [
        ("/weather/lubbock?chaos=true", {}),
        ("/weather/lubbock?fault=true", {}),
        ("/weather/lubbock", {"HTTP_X_CHAOS_MODE": "true"}),
    ],
)
def test_fault_injection_returns_server_error(engine, path, headers) -> None:
    client = Client()
    client.get("/weather/lubbock")

    response = client.get(path, **headers)

    assert response.status_code == 500
    assert "simulated upstream failure" in response.json()["detail"]


def test_blank_location_is_bad_request(engine) -> None:
    assert Client().get("/weather/%20").status_code == 400
    assert Client().get("/weather/").status_code == 400


def test_correlation_id_is_echoed(engine) -> None:
    response = Client().get("/weather/austin", HTTP_X_CORRELATION_ID="abc-123")

    assert response["X-Correlation-ID"] == "abc-123"


def test_correlation_id_is_generated(engine) -> None:
    response = Client().get("/health")

    assert response["X-Correlation-ID"]


def test_request_metrics_use_templated_paths(engine) -> None:
    before = _requests_total("/weather/:location", "200")

    Client().get("/weather/odessa")

    assert _requests_total("/weather/:location", "200") == before + 1


def test_metrics_endpoint_exposes_service_metrics(engine) -> None:
    Client().get("/weather/midland")

    response = Client().get("/metrics")

    assert response.status_code == 200
    body = response.content.decode()
    assert "weather_service_cache_misses_total" in body
    assert "weather_jobs_processed" in body
    assert "weather_queue_length" in body


def test_queue_load_defaults(queue) -> None:
    response = Client().post("/queue/load")

    assert response.status_code == 200
    assert response.json() == {"loaded": 100, "fault": False, "queue": queue.name}
    assert queue.length() == 100


def test_queue_load_with_count_and_fault(queue, job_queue) -> None:
    response = Client().post("/queue/load?count=3&chaos=true&location=austin")

    assert response.json()["loaded"] == 3
    assert response.json()["fault"] is True
    job = job_queue.pop(CallContext())
    assert job.location == "austin"
    assert job.fault is True


@pytest.mark.parametrize("count", ["0", "-5", "10001", "many"])
def test_queue_load_out_of_range_count_falls_back(queue, count) -> None:
    response = Client().post(f"/queue/load?count={count}")

    assert response.json()["loaded"] == 100


def test_queue_stats(queue) -> None:
    Client().post("/queue/load?count=4")

    response = Client().get("/queue/stats")

    assert response.status_code == 200
    assert response.json() == {"length": 4, "queue": queue.name}


def test_queue_unavailable_is_server_error(queue, redis_client) -> None:
    redis_client.fail_with = RedisConnectionError("down")
    client = Client()

    assert client.get("/queue/stats").status_code == 500
    assert client.post("/queue/load?count=2").status_code == 500
