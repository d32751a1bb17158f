"""Weather engine: fault check, cache-aside lookup and retried upstream fetch."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Dict, Optional

from weather_service.core.abstractions import MetricsSink, WeatherFetcher, WeatherResult
from weather_service.core.cache import ResultCache, normalize_location
from weather_service.core.context import CallContext
from weather_service.core.exceptions import FaultInjected, InvalidLocation
from weather_service.core.metrics import CACHE_HITS, CACHE_MISSES, NullMetrics
from weather_service.core.retry import retry


logger = logging.getLogger(__name__)


class WeatherEngine:
    """Serve weather for a location through the result cache.

    The order of a lookup is fixed: fault signal, cache read, upstream fetch
    with retries, cache write. Failed fetches are never cached.

    With ``single_flight`` enabled, concurrent misses for the same location
    share one fetch; otherwise each miss fetches on its own.
    """

    def __init__(
        self,
        fetcher: WeatherFetcher,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsSink] = None,
        *,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        single_flight: bool = False,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetcher = fetcher
        self.cache = cache if cache is not None else ResultCache()
        self.metrics = metrics or NullMetrics()
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.single_flight = single_flight
        self._inflight: Dict[str, "Future[WeatherResult]"] = {}
        self._inflight_lock = threading.Lock()

    def get_weather(self, location: str, ctx: Optional[CallContext] = None) -> WeatherResult:
        ctx = ctx or CallContext.background()

        if ctx.fault.active:
            logger.error(
                "Fault injection active, bypassing cache trace_id=%s location=%s",
                ctx.trace_id,
                location,
            )
            raise FaultInjected(location)

        key = normalize_location(location)
        if not key:
            raise InvalidLocation("location is required")

        cached = self.cache.get(key)
        if cached is not None:
            self.metrics.increment_counter(CACHE_HITS)
            return cached.as_cached()

        self.metrics.increment_counter(CACHE_MISSES)
        logger.debug("Cache miss trace_id=%s location=%s", ctx.trace_id, key)
        if self.single_flight:
            return self._fetch_coalesced(key, ctx)
        return self._fetch_and_store(key, ctx)

    def _fetch_and_store(self, key: str, ctx: CallContext) -> WeatherResult:
        result = retry(ctx, self.max_attempts, self.initial_delay, self.fetcher.fetch).as_fresh()
        self.cache.set(key, result)
        logger.info(
            "Fetched weather from %s trace_id=%s location=%s",
            self.fetcher.name,
            ctx.trace_id,
            key,
        )
        return result

    def _fetch_coalesced(self, key: str, ctx: CallContext) -> WeatherResult:
        with self._inflight_lock:
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            return self._await(future, ctx)

        try:
            result = self._fetch_and_store(key, ctx)
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._inflight_lock:
                self._inflight.pop(key, None)

    @staticmethod
    def _await(future: "Future[WeatherResult]", ctx: CallContext) -> WeatherResult:
        # Followers stop waiting once their own context ends.
        while not future.done():
            if ctx.wait(0.05):
                raise ctx.error()
        return future.result()


__all__ = ["WeatherEngine"]
