from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Sequence

import pytest
from prometheus_client import CollectorRegistry

from weather_service.core.metrics import PrometheusMetrics
from weather_service.ingest.queue import JobQueue


class InMemoryRedis:
    """List commands used by the job queue, with blocking BRPOP."""

    def __init__(self) -> None:
        self._lists: Dict[str, List[bytes]] = {}
        self._cond = threading.Condition()
        self.fail_with: Optional[Exception] = None
        self.brpop_calls = 0

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def lpush(self, name: str, *values) -> int:
        self._check()
        with self._cond:
            items = self._lists.setdefault(name, [])
            for value in values:
                items.insert(0, value.encode("utf-8") if isinstance(value, str) else value)
            self._cond.notify_all()
            return len(items)

    def brpop(self, keys: Sequence[str], timeout: float = 0):
        self._check()
        self.brpop_calls += 1
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                for key in keys:
                    items = self._lists.get(key)
                    if items:
                        return key.encode("utf-8"), items.pop()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)

    def llen(self, name: str) -> int:
        self._check()
        with self._cond:
            return len(self._lists.get(name, []))

    def raw_items(self, name: str) -> List[bytes]:
        with self._cond:
            return list(self._lists.get(name, []))


@pytest.fixture()
def redis_client() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture()
def job_queue(redis_client: InMemoryRedis) -> JobQueue:
    return JobQueue(redis_client, name="weather:jobs:test", pop_timeout=0.05)


@pytest.fixture()
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture()
def metrics(registry: CollectorRegistry) -> PrometheusMetrics:
    return PrometheusMetrics(registry)
