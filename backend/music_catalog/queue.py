"""
Redis Queue (RQ) configuration for background delivery jobs.
"""
import redis
from rq import Queue
from rq.job import Job
from typing import Optional
from music_catalog.config import get_settings
from music_catalog.logger import get_logger
from music_catalog.exceptions import ConfigurationError

logger = get_logger("queue")


class Queues:
    """Queue names."""
    DEFAULT = "default"


class QueueManager:
    """Queue manager for RQ operations."""

    def __init__(self, redis_url: Optional[str] = None):
        self._redis_url = redis_url
        self._connection = None
        self._queues = {}

    def get_connection(self) -> redis.Redis:
        """Get or create the Redis connection."""
        if self._connection is None:
            url = self._redis_url or get_settings().redis_url
            if not url:
                raise ConfigurationError("REDIS_URL is not configured")
            self._connection = redis.from_url(
                url,
                decode_responses=False,
                socket_connect_timeout=10,
                socket_timeout=10
            )
            try:
                self._connection.ping()
                logger.info("Connected to Redis")
            except redis.ConnectionError as e:
                logger.error(f"Failed to connect to Redis: {e}")
                self._connection = None
                raise

        return self._connection

    def get_queue(self, name: str = Queues.DEFAULT) -> Queue:
        """Get or create a queue."""
        if name not in self._queues:
            self._queues[name] = Queue(name, connection=self.get_connection())
        return self._queues[name]

    def enqueue_job(self, queue_name: str, func, *args, **kwargs) -> Job:
        """Enqueue a job for background processing."""
        job = self.get_queue(queue_name).enqueue(func, *args, **kwargs)
        logger.debug(f"Enqueued job {job.id} in queue '{queue_name}'")
        return job

    def queue_length(self, queue_name: str) -> int:
        return len(self.get_queue(queue_name))


_queue_manager = None


def get_queue_manager() -> QueueManager:
    """Get the global queue manager instance."""
    global _queue_manager
    if _queue_manager is None:
        _queue_manager = QueueManager()
    return _queue_manager
