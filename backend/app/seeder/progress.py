"""
Progress sinks for seeding runs.

A sink is any callable taking a ProgressEvent; the pipeline calls it once per
flushed batch. Logging is the default, Redis Pub/Sub lets a dashboard or SSE
endpoint follow a long run from another process.
"""
import json
import logging
import os
from datetime import datetime
from typing import Iterable, Optional

import redis

from app.seeder.writer import ProgressEvent, ProgressSink

logger = logging.getLogger(__name__)

STATE_TTL_SECONDS = 3600


class LoggingProgressSink:
    """
    Logs a human-readable percentage every ``log_every`` batches and on the
    final batch of a phase, so 500 batches do not produce 500 log lines.
    """

    def __init__(self, log_every: int = 10, log: Optional[logging.Logger] = None):
        self.log_every = max(1, log_every)
        self.log = log or logger

    def __call__(self, event: ProgressEvent) -> None:
        if event.batch_number % self.log_every != 0 and not event.is_final:
            return
        self.log.info(
            "[DATA_SEEDER] Saved %s: %s/%s (%s%%) in %.1fs (%.0f rows/s)",
            event.phase,
            event.completed,
            event.total,
            event.percent,
            event.elapsed_seconds,
            event.rows_per_second,
        )


class CompositeProgressSink:
    """Fans each event out to several sinks in order."""

    def __init__(self, sinks: Iterable[ProgressSink]):
        self.sinks = [sink for sink in sinks if sink is not None]

    def __call__(self, event: ProgressEvent) -> None:
        for sink in self.sinks:
            sink(event)


class RedisProgressPublisher:
    """
    Publishes seeding progress to Redis Pub/Sub.

    Channel format: data_seeder:{run_id}

    Event types:
    - seed_started: Run has begun, with requested counts
    - seed_progress: Emitted after each flushed batch
    - seed_completed: Run finished, with the final summary
    - seed_failed: Run aborted, with the error and partial counts

    Publishing is best effort: a Redis outage is logged and never aborts a seed.
    """

    def __init__(self, run_id: str, redis_url: Optional[str] = None):
        """
        Initialize the publisher.

        Args:
            run_id: Identifier of the seeding run (Celery task id or generated).
            redis_url: Redis connection URL. If not provided, uses REDIS_URL env var.
        """
        self.run_id = run_id
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self._redis: Optional[redis.Redis] = None

    @property
    def redis(self) -> redis.Redis:
        """Lazy-load Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
        return self._redis

    @property
    def channel(self) -> str:
        return f"data_seeder:{self.run_id}"

    @property
    def state_key(self) -> str:
        return f"data_seeder_state:{self.run_id}"

    def _publish(self, event_data: dict) -> None:
        """
        Publish an event and keep the latest one per type for late subscribers.

        Args:
            event_data: The event payload to publish
        """
        try:
            message = json.dumps(event_data)
            self.redis.publish(self.channel, message)

            pipe = self.redis.pipeline()
            pipe.hset(self.state_key, event_data.get("type", ""), message)
            pipe.expire(self.state_key, STATE_TTL_SECONDS)
            pipe.execute()

            logger.debug(f"Published event to {self.channel}: {event_data.get('type')}")
        except redis.RedisError as e:
            logger.error(f"Failed to publish seeding event: {e}")

    def __call__(self, event: ProgressEvent) -> None:
        self._publish({
            "type": "seed_progress",
            "run_id": self.run_id,
            "phase": event.phase,
            "completed": event.completed,
            "total": event.total,
            "percentage": event.percent,
            "elapsed_seconds": round(event.elapsed_seconds, 3),
            "batch_number": event.batch_number,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def publish_started(self, user_count: int, transaction_count: int) -> None:
        self._publish({
            "type": "seed_started",
            "run_id": self.run_id,
            "user_count": user_count,
            "transaction_count": transaction_count,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def publish_completed(self, summary: dict) -> None:
        self._publish({
            "type": "seed_completed",
            "run_id": self.run_id,
            "summary": summary,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def publish_failed(self, error: str, summary: Optional[dict] = None) -> None:
        """
        Publish a seed_failed event.

        Args:
            error: Error message describing the failure
            summary: Partial counts persisted before the failure, if known
        """
        self._publish({
            "type": "seed_failed",
            "run_id": self.run_id,
            "error": error,
            "summary": summary,
            "timestamp": datetime.utcnow().isoformat(),
        })

    def close(self) -> None:
        """Close the Redis connection."""
        if self._redis:
            self._redis.close()
            self._redis = None
