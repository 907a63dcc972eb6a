"""
Seeder configuration.

``DataSeederSettings`` reads ``DATA_SEEDER_*`` environment variables (and ``.env``)
the same way the database settings do. ``GenerationConfig`` is the validated,
immutable view a single pipeline run works from.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from app.seeder.errors import ConfigurationError
from app.seeder.records import ActivityTier

load_dotenv()

DEFAULT_USER_COUNT = 5000
DEFAULT_TRANSACTION_COUNT = 500000
DEFAULT_BATCH_SIZE = 1000
DEFAULT_CURRENCY = "INR"
DEFAULT_RECENCY_DECAY = 0.02  # per day, over the 90-day transaction window

DEFAULT_TIER_MULTIPLIERS: Dict[ActivityTier, float] = {
    ActivityTier.HIGH: 6.0,
    ActivityTier.NORMAL: 1.0,
    ActivityTier.LOW: 0.3,
    ActivityTier.NEW: 0.1,
}


class DataSeederSettings(BaseSettings):
    """
    Environment-driven seeder settings.
    ``enabled`` is only consulted by the startup hook and the Celery task.
    """
    enabled: bool = False
    user_count: int = DEFAULT_USER_COUNT
    transaction_count: int = DEFAULT_TRANSACTION_COUNT
    batch_size: int = DEFAULT_BATCH_SIZE
    random_seed: Optional[int] = None
    currency: str = DEFAULT_CURRENCY
    workers: int = 1
    queue_size: int = 10000
    progress_log_every: int = 10
    recency_decay: float = DEFAULT_RECENCY_DECAY
    high_multiplier: float = DEFAULT_TIER_MULTIPLIERS[ActivityTier.HIGH]
    normal_multiplier: float = DEFAULT_TIER_MULTIPLIERS[ActivityTier.NORMAL]
    low_multiplier: float = DEFAULT_TIER_MULTIPLIERS[ActivityTier.LOW]
    new_multiplier: float = DEFAULT_TIER_MULTIPLIERS[ActivityTier.NEW]

    class Config:
        env_prefix = "DATA_SEEDER_"
        env_file = ".env"
        extra = "ignore"


@dataclass(frozen=True)
class GenerationConfig:
    user_count: int = DEFAULT_USER_COUNT
    transaction_count: int = DEFAULT_TRANSACTION_COUNT
    batch_size: int = DEFAULT_BATCH_SIZE
    random_seed: Optional[int] = None
    currency: str = DEFAULT_CURRENCY
    tier_multipliers: Dict[ActivityTier, float] = field(
        default_factory=lambda: dict(DEFAULT_TIER_MULTIPLIERS)
    )
    recency_decay: float = DEFAULT_RECENCY_DECAY
    progress_log_every: int = 10
    workers: int = 1
    queue_size: int = 10000

    def __post_init__(self) -> None:
        _require_int("user_count", self.user_count, minimum=0)
        _require_int("transaction_count", self.transaction_count, minimum=0)
        _require_int("batch_size", self.batch_size, minimum=1)
        _require_int("progress_log_every", self.progress_log_every, minimum=1)
        _require_int("workers", self.workers, minimum=1)
        _require_int("queue_size", self.queue_size, minimum=1)

        currency = (self.currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ConfigurationError(f"currency must be a 3-letter ISO code, got {self.currency!r}")
        object.__setattr__(self, "currency", currency)

        if not math.isfinite(self.recency_decay) or self.recency_decay < 0:
            raise ConfigurationError(f"recency_decay must be >= 0, got {self.recency_decay!r}")

        multipliers = {ActivityTier(tier): value for tier, value in self.tier_multipliers.items()}
        missing = [tier.value for tier in ActivityTier if tier not in multipliers]
        if missing:
            raise ConfigurationError(f"Missing tier multipliers for: {', '.join(missing)}")
        for tier, value in multipliers.items():
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(
                    f"Tier multiplier for {tier.value} must be positive, got {value!r}"
                )
        object.__setattr__(self, "tier_multipliers", multipliers)

    @classmethod
    def from_settings(cls, settings: Optional[DataSeederSettings] = None) -> "GenerationConfig":
        settings = settings or DataSeederSettings()
        return cls(
            user_count=settings.user_count,
            transaction_count=settings.transaction_count,
            batch_size=settings.batch_size,
            random_seed=settings.random_seed,
            currency=settings.currency,
            tier_multipliers={
                ActivityTier.HIGH: settings.high_multiplier,
                ActivityTier.NORMAL: settings.normal_multiplier,
                ActivityTier.LOW: settings.low_multiplier,
                ActivityTier.NEW: settings.new_multiplier,
            },
            recency_decay=settings.recency_decay,
            progress_log_every=settings.progress_log_every,
            workers=settings.workers,
            queue_size=settings.queue_size,
        )


def _require_int(name: str, value: object, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
