"""Celery task for background seeding with progress updates via Redis Pub/Sub."""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Optional

from celery_app import celery_app
from app.database import SessionLocal
from app.seeder import DataSeederSettings, GenerationConfig, SeederError, seed_database
from app.seeder.progress import RedisProgressPublisher

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _build_config(
    user_count: Optional[int],
    transaction_count: Optional[int],
    random_seed: Optional[int],
) -> GenerationConfig:
    config = GenerationConfig.from_settings(DataSeederSettings())
    overrides = {
        "user_count": user_count,
        "transaction_count": transaction_count,
        "random_seed": random_seed,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(config, **overrides) if overrides else config


@celery_app.task(bind=True, name="tasks.seed_tasks.run_data_seeder")
def run_data_seeder(
    self,
    user_count: Optional[int] = None,
    transaction_count: Optional[int] = None,
    random_seed: Optional[int] = None,
) -> dict:
    """
    Seed users and transactions in the background.

    Counts and seed default to the DATA_SEEDER_* settings. Progress is published
    on ``data_seeder:{task_id}``. Not retried: a rerun appends another dataset.
    """
    if not _env_bool("DATA_SEEDER_ENABLED", default=False):
        logger.info("[DATA_SEEDER] Skipped: DATA_SEEDER_ENABLED is disabled")
        return {"skipped": True, "reason": "DATA_SEEDER_DISABLED"}

    config = _build_config(user_count, transaction_count, random_seed)
    publisher = RedisProgressPublisher(run_id=self.request.id or "local")
    publisher.publish_started(config.user_count, config.transaction_count)

    try:
        summary = seed_database(config, SessionLocal, progress_sink=publisher)
        result = summary.as_dict()
        publisher.publish_completed(result)
        logger.info(
            "[DATA_SEEDER] Task completed users=%s transactions=%s elapsed=%.2fs",
            result["users_created"],
            result["transactions_created"],
            result["elapsed_seconds"],
        )
        return result
    except SeederError as exc:
        partial = exc.summary.as_dict() if exc.summary is not None else None
        logger.exception("[DATA_SEEDER] Task failed: %s (partial=%s)", exc, partial)
        publisher.publish_failed(str(exc), partial)
        raise
    except Exception as exc:
        logger.exception("[DATA_SEEDER] Task failed unexpectedly: %s", exc)
        publisher.publish_failed(str(exc))
        raise
    finally:
        publisher.close()
