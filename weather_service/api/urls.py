"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from weather_service.api.views import HealthView, MetricsView, QueueLoadView, QueueStatsView, WeatherView

urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("metrics", MetricsView.as_view(), name="metrics"),
    path("weather/", WeatherView.as_view(), {"location": ""}, name="weather-missing"),
    path("weather/<str:location>", WeatherView.as_view(), name="weather"),
    path("queue/load", QueueLoadView.as_view(), name="queue-load"),
    path("queue/stats", QueueStatsView.as_view(), name="queue-stats"),
]
