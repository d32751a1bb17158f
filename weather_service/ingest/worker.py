"""Background loops draining the job queue and reporting its backlog."""
from __future__ import annotations

import enum
import logging
import threading
from typing import List, Optional

from weather_service.core.abstractions import MetricsSink
from weather_service.core.context import CallContext, FaultSignal
from weather_service.core.exceptions import (
    Cancelled,
    QueueUnavailable,
    SerializationError,
    WeatherServiceError,
)
from weather_service.core.metrics import JOBS_PROCESSED, QUEUE_LENGTH
from weather_service.core.services.weather_service import WeatherEngine
from weather_service.ingest.queue import JobQueue


logger = logging.getLogger(__name__)

QUEUE_LENGTH_UNAVAILABLE = -1


class WorkerState(enum.Enum):
    IDLE = "idle"
    POPPING = "popping"
    PROCESSING = "processing"
    STOPPED = "stopped"


class QueueWorker:
    """Pops jobs and drives them through the weather engine until cancelled.

    Engine failures are counted, never fatal. Queue outages pause the loop for
    ``error_pause`` seconds and the pop is retried without limit.
    """

    def __init__(
        self,
        queue: JobQueue,
        engine: WeatherEngine,
        metrics: MetricsSink,
        *,
        error_pause: float = 2.0,
    ) -> None:
        self.queue = queue
        self.engine = engine
        self.metrics = metrics
        self.error_pause = error_pause
        self.state = WorkerState.IDLE

    def run(self, ctx: CallContext) -> None:
        logger.info("Queue worker started queue=%s", self.queue.name)
        while self.run_once(ctx):
            pass
        logger.info("Queue worker stopped queue=%s", self.queue.name)

    def run_once(self, ctx: CallContext) -> bool:
        """Run one Idle -> Popping -> Processing -> Idle cycle.

        Returns False once the worker has reached the Stopped state.
        """

        if ctx.done:
            self.state = WorkerState.STOPPED
            return False

        self.state = WorkerState.POPPING
        try:
            job = self.queue.pop(ctx)
        except Cancelled:
            self.state = WorkerState.STOPPED
            return False
        except QueueUnavailable as exc:
            logger.error("Queue worker: pop failed error=%s", exc)
            self.state = WorkerState.IDLE
            if ctx.wait(self.error_pause):
                self.state = WorkerState.STOPPED
                return False
            return True
        except SerializationError as exc:
            logger.warning("Queue worker: dropped malformed job error=%s", exc)
            self.metrics.increment_counter(JOBS_PROCESSED, {"outcome": "dropped"})
            self.state = WorkerState.IDLE
            return True

        self.state = WorkerState.PROCESSING
        job_ctx = ctx.child(fault=FaultSignal.from_flag(job.fault))
        try:
            self.engine.get_weather(job.location, job_ctx)
        except WeatherServiceError as exc:
            self.metrics.increment_counter(JOBS_PROCESSED, {"outcome": "error"})
            logger.warning(
                "Queue worker: job failed location=%s fault=%s error=%s",
                job.location,
                job.fault,
                exc,
            )
        except Exception:
            self.metrics.increment_counter(JOBS_PROCESSED, {"outcome": "error"})
            logger.exception("Queue worker: job crashed location=%s fault=%s", job.location, job.fault)
        else:
            self.metrics.increment_counter(JOBS_PROCESSED, {"outcome": "success"})
        self.state = WorkerState.IDLE
        return True


class BacklogReporter:
    """Samples the queue length every ``interval`` seconds into a gauge."""

    def __init__(self, queue: JobQueue, metrics: MetricsSink, *, interval: float = 2.0) -> None:
        self.queue = queue
        self.metrics = metrics
        self.interval = interval

    def sample(self) -> int:
        try:
            length = self.queue.length()
        except QueueUnavailable as exc:
            logger.warning("Backlog reporter: length unavailable error=%s", exc)
            length = QUEUE_LENGTH_UNAVAILABLE
        self.metrics.set_gauge(QUEUE_LENGTH, float(length))
        return length

    def run(self, ctx: CallContext) -> None:
        while not ctx.done:
            self.sample()
            if ctx.wait(self.interval):
                break


class BackgroundRunner:
    """Runs the worker and the reporter on daemon threads under one context."""

    def __init__(
        self,
        worker: QueueWorker,
        reporter: BacklogReporter,
        ctx: Optional[CallContext] = None,
    ) -> None:
        self.worker = worker
        self.reporter = reporter
        self.ctx = ctx or CallContext.background()
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("background loops already started")
        self._threads = [
            threading.Thread(target=self.worker.run, args=(self.ctx,), name="queue-worker", daemon=True),
            threading.Thread(target=self.reporter.run, args=(self.ctx,), name="backlog-reporter", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Cancel both loops and wait for them; True if both exited."""

        self.ctx.cancel("shutdown")
        for thread in self._threads:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in self._threads)

    def wait(self) -> None:
        for thread in self._threads:
            thread.join()


__all__ = [
    "BackgroundRunner",
    "BacklogReporter",
    "QUEUE_LENGTH_UNAVAILABLE",
    "QueueWorker",
    "WorkerState",
]
