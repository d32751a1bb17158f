"""Redis-backed FIFO of pending weather lookup jobs."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Union

import redis
from redis.exceptions import RedisError

from weather_service.core.context import CallContext
from weather_service.core.exceptions import QueueUnavailable, SerializationError
from weather_service.ingest.schemas import Job, decode_job, encode_job


logger = logging.getLogger(__name__)

DEFAULT_QUEUE_NAME = "weather:jobs"

JobLike = Union[Job, Mapping[str, Any]]


class JobQueue:
    """FIFO over a Redis list: LPUSH on the producer side, BRPOP on the consumer.

    The list lives in Redis, so its contents survive process restarts and
    Redis serializes concurrent producers and consumers.
    """

    def __init__(
        self,
        client: "redis.Redis",
        name: str = DEFAULT_QUEUE_NAME,
        pop_timeout: float = 1.0,
    ) -> None:
        self.client = client
        self.name = name
        self.pop_timeout = pop_timeout

    @classmethod
    def from_url(cls, url: str, name: str = DEFAULT_QUEUE_NAME, pop_timeout: float = 1.0) -> "JobQueue":
        client = redis.Redis.from_url(
            url,
            socket_connect_timeout=5,
            # BRPOP holds the socket open for pop_timeout seconds.
            socket_timeout=max(10.0, pop_timeout + 5),
        )
        return cls(client, name=name, pop_timeout=pop_timeout)

    def push(self, job: JobLike) -> None:
        payload = encode_job(job)
        try:
            self.client.lpush(self.name, payload)
        except RedisError as exc:
            logger.error("Queue push failed queue=%s error=%s", self.name, exc)
            raise QueueUnavailable(str(exc)) from exc

    def push_many(self, jobs: Iterable[JobLike]) -> int:
        """Enqueue jobs in one round trip and return how many were pushed.

        Jobs are encoded in order; if one fails to encode, the jobs before it
        are still pushed and the raised ``SerializationError`` reports that
        count in ``enqueued``.
        """

        payloads: List[str] = []
        failure: Optional[SerializationError] = None
        for job in jobs:
            try:
                payloads.append(encode_job(job))
            except SerializationError as exc:
                failure = exc
                break

        if payloads:
            try:
                self.client.lpush(self.name, *payloads)
            except RedisError as exc:
                logger.error("Queue bulk push failed queue=%s error=%s", self.name, exc)
                raise QueueUnavailable(str(exc)) from exc

        if failure is not None:
            logger.warning(
                "Bulk push stopped on invalid job queue=%s enqueued=%s",
                self.name,
                len(payloads),
            )
            raise SerializationError(str(failure), enqueued=len(payloads)) from failure
        return len(payloads)

    def pop(self, ctx: CallContext) -> Job:
        """Block until a job is available or ``ctx`` ends.

        Cancellation is observed between BRPOP calls, so it takes effect
        within ``pop_timeout`` seconds. A malformed record is removed from the
        queue, logged and reported as ``SerializationError``.
        """

        while True:
            ctx.raise_if_done()
            timeout = self.pop_timeout
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)
            try:
                item = self.client.brpop([self.name], timeout=max(timeout, 0.01))
            except RedisError as exc:
                raise QueueUnavailable(str(exc)) from exc
            if item is None:
                continue
            _, raw = item
            try:
                return decode_job(raw)
            except SerializationError:
                logger.warning("Dropping malformed job queue=%s raw=%r", self.name, raw)
                raise

    def length(self) -> int:
        """Point-in-time backlog size.

        Concurrent pushes and pops make this approximate; use it for
        monitoring and scaling signals only.
        """

        try:
            return int(self.client.llen(self.name))
        except RedisError as exc:
            raise QueueUnavailable(str(exc)) from exc


__all__ = ["DEFAULT_QUEUE_NAME", "JobQueue"]
