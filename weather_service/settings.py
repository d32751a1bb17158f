"""Base Django settings for the weather service."""
from __future__ import annotations

import os

from django.core.exceptions import ImproperlyConfigured

def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


def env_float(name: str, default: str) -> float:
    raw = env(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"Environment variable {name} must be a number, got {raw!r}") from exc


def env_int(name: str, default: str) -> int:
    raw = env(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f"Environment variable {name} must be an integer, got {raw!r}") from exc


SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "weather_service.api.apps.WeatherApiConfig",
]

MIDDLEWARE = [
    "weather_service.api.middleware.ObservabilityMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "weather_service.urls"

WSGI_APPLICATION = "weather_service.wsgi.application"

# The service keeps no relational state.
DATABASES: dict = {}

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
}

# Job queue -------------------------------------------------------------------
REDIS_URL = env("REDIS_URL", "redis://localhost:6379/0")
REDIS_QUEUE_NAME = env("REDIS_QUEUE_NAME", "weather:jobs")
QUEUE_POP_TIMEOUT = env_float("QUEUE_POP_TIMEOUT", "1")
QUEUE_WORKER_ERROR_PAUSE = env_float("QUEUE_WORKER_ERROR_PAUSE", "2")
QUEUE_BACKLOG_INTERVAL = env_float("QUEUE_BACKLOG_INTERVAL", "2")
QUEUE_LOAD_DEFAULT_COUNT = 100
QUEUE_LOAD_MAX_COUNT = 10000
QUEUE_LOAD_DEFAULT_LOCATION = "lubbock"

# Weather engine --------------------------------------------------------------
WEATHER_UPSTREAM = env("WEATHER_UPSTREAM", "simulated")
if WEATHER_UPSTREAM not in {"simulated", "open-meteo"}:
    raise ImproperlyConfigured(f"Unsupported WEATHER_UPSTREAM {WEATHER_UPSTREAM!r}")
WEATHER_UPSTREAM_URL = os.environ.get("WEATHER_UPSTREAM_URL") or None
WEATHER_LATITUDE = env_float("WEATHER_LATITUDE", "33.57")
WEATHER_LONGITUDE = env_float("WEATHER_LONGITUDE", "-101.85")
WEATHER_RETRY_ATTEMPTS = env_int("WEATHER_RETRY_ATTEMPTS", "3")
WEATHER_RETRY_INITIAL_DELAY = env_float("WEATHER_RETRY_INITIAL_DELAY", "0.5")
WEATHER_REQUEST_TIMEOUT = env_float("WEATHER_REQUEST_TIMEOUT", "10")
WEATHER_CACHE_TTL = env_float("WEATHER_CACHE_TTL", "0") or None
WEATHER_CACHE_MAX_ENTRIES = env_int("WEATHER_CACHE_MAX_ENTRIES", "0") or None
WEATHER_SINGLE_FLIGHT = os.environ.get("WEATHER_SINGLE_FLIGHT", "0") == "1"

# Logging ---------------------------------------------------------------------
LOG_LEVEL = env("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "service": {
            "format": "time=%(asctime)s level=%(levelname)s service=weather-service logger=%(name)s msg=%(message)s",
        },
    },
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "service",
        },
    },
    "root": {
        "handlers": ["stdout"],
        "level": LOG_LEVEL,
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True
