#!/usr/bin/env python3
"""
RQ worker delivering queued analytics events.
"""
import sys
import signal
from collections import Counter
from typing import Optional

from rq import Worker
from music_catalog.config import get_settings
from music_catalog.queue import get_queue_manager, Queues
from music_catalog.logger import get_logger

logger = get_logger("worker")

# Log a running total every this many finished jobs per queue.
REPORT_EVERY = 100


class DeliveryStats:
    """Per-queue counts of delivered and failed jobs."""

    def __init__(self, report_every: int = REPORT_EVERY):
        self.report_every = report_every
        self.delivered = Counter()
        self.failed = Counter()

    def record(self, queue_name: str, ok: bool, event_name: Optional[str] = None) -> None:
        if ok:
            self.delivered[queue_name] += 1
        else:
            self.failed[queue_name] += 1
            logger.warning(f"Delivery of '{event_name or 'unknown'}' from '{queue_name}' failed")

        if self.total(queue_name) % self.report_every == 0:
            logger.info(self.describe(queue_name))

    def total(self, queue_name: str) -> int:
        return self.delivered[queue_name] + self.failed[queue_name]

    def describe(self, queue_name: str) -> str:
        return (
            f"Queue '{queue_name}': {self.delivered[queue_name]} delivered, "
            f"{self.failed[queue_name]} failed"
        )

    def summary(self) -> str:
        names = sorted(set(self.delivered) | set(self.failed))
        if not names:
            return "No jobs drained"
        return "; ".join(self.describe(name) for name in names)


def _event_name(job) -> Optional[str]:
    payload = job.args[0] if job.args else None
    return payload.get("name") if isinstance(payload, dict) else None


class AnalyticsWorker(Worker):
    """RQ worker that keeps delivery counts per queue."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.stats = DeliveryStats()

    def handle_job_success(self, job, queue, *args, **kwargs):
        super().handle_job_success(job, queue, *args, **kwargs)
        self.stats.record(queue.name, True, _event_name(job))

    def handle_job_failure(self, job, queue, *args, **kwargs):
        super().handle_job_failure(job, queue, *args, **kwargs)
        self.stats.record(queue.name, False, _event_name(job))


_worker: Optional[AnalyticsWorker] = None


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info(f"Received signal {signum}, shutting down worker...")
    if _worker is not None:
        logger.info(_worker.stats.summary())
    sys.exit(0)


def main():
    """Run the RQ worker."""
    global _worker
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    settings = get_settings()
    if not settings.analytics_active:
        logger.warning("Analytics is disabled; the worker will only drain queued events")

    queue_manager = get_queue_manager()
    logger.info("Worker starting...")

    queues = [
        queue_manager.get_queue(settings.analytics_queue),
        queue_manager.get_queue(Queues.DEFAULT)
    ]

    _worker = AnalyticsWorker(queues, connection=queue_manager.get_connection())

    logger.info(f"Worker listening on queues: {[q.name for q in queues]}")
    _worker.work()
    logger.info(_worker.stats.summary())


if __name__ == "__main__":
    main()
