"""Run the queue worker and the backlog reporter until a shutdown signal."""
from __future__ import annotations

import logging
import signal
from typing import Any

from django.conf import settings
from django.core.management.base import BaseCommand

from weather_service.api.views import get_job_queue, get_weather_engine
from weather_service.core.metrics import get_metrics
from weather_service.ingest.worker import BackgroundRunner, BacklogReporter, QueueWorker


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Consume weather lookup jobs from Redis and publish the queue backlog"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument(
            "--shutdown-timeout",
            type=float,
            default=10.0,
            help="Seconds to wait for the loops to exit after a signal",
        )

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        metrics = get_metrics()
        queue = get_job_queue()
        runner = BackgroundRunner(
            QueueWorker(queue, get_weather_engine(), metrics, error_pause=settings.QUEUE_WORKER_ERROR_PAUSE),
            BacklogReporter(queue, metrics, interval=settings.QUEUE_BACKLOG_INTERVAL),
        )

        def _handle_signal(signum, frame):
            logger.info("Received signal %s, shutting down", signum)
            runner.ctx.cancel(f"signal {signum}")

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        logger.info("Starting queue worker queue=%s", queue.name)
        runner.start()
        while not runner.ctx.wait(1.0):
            pass
        if not runner.stop(options["shutdown_timeout"]):
            logger.error("Background loops did not exit within %ss", options["shutdown_timeout"])
        self.stdout.write("queue worker stopped")
