"""Globally unique, recency-weighted transaction timestamps."""

from __future__ import annotations

import logging
import math
import random
import threading
from datetime import datetime, timedelta
from typing import Set

from app.seeder.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)

TRANSACTION_WINDOW = timedelta(days=90)
DEFAULT_RESOLUTION = timedelta(milliseconds=1)
DEFAULT_ATTEMPTS_PER_ROUND = 5
DEFAULT_WIDENING_ROUNDS = 4
JITTER_GROWTH = 10


class TimestampAllocator:
    """Issues timestamps in ``[now - window, now]`` that never repeat within a run.

    Ages follow a truncated exponential distribution with rate ``decay`` per day,
    so density increases toward ``now``. Timestamps are quantised to
    ``resolution`` and tracked as integer ticks back from ``now``.

    On collision the candidate is nudged by a random jitter of a few ticks.
    Each round makes ``attempts_per_round`` tries, then the jitter range grows
    by ``JITTER_GROWTH``. When every round is spent, :class:`GenerationError`
    is raised.

    The seen-set is the only shared mutable state in generation. One allocator
    instance belongs to one run and its lock serialises access when several
    producers share it.
    """

    def __init__(
        self,
        now: datetime,
        decay: float = 0.02,
        window: timedelta = TRANSACTION_WINDOW,
        resolution: timedelta = DEFAULT_RESOLUTION,
        attempts_per_round: int = DEFAULT_ATTEMPTS_PER_ROUND,
        widening_rounds: int = DEFAULT_WIDENING_ROUNDS,
    ):
        if resolution <= timedelta(0):
            raise ConfigurationError("Timestamp resolution must be positive.")
        if window < timedelta(0):
            raise ConfigurationError("Timestamp window must not be negative.")
        if decay < 0 or not math.isfinite(decay):
            raise ConfigurationError(f"Recency decay must be >= 0, got {decay!r}")
        if attempts_per_round < 1 or widening_rounds < 1:
            raise ConfigurationError("Collision retry budget must allow at least one attempt.")

        self.now = now
        self.window = window
        self.resolution = resolution
        self.decay = decay
        self.attempts_per_round = attempts_per_round
        self.widening_rounds = widening_rounds

        self._window_days = window.total_seconds() / 86400
        self._max_tick = window // resolution
        # Probability mass of the truncated exponential over the window.
        self._mass = 1 - math.exp(-decay * self._window_days) if decay > 0 else 0.0
        self._seen: Set[int] = set()
        self._lock = threading.Lock()
        self.collisions = 0

    @property
    def issued(self) -> int:
        return len(self._seen)

    def allocate(self, rng: random.Random) -> datetime:
        with self._lock:
            tick = self._draw_tick(rng)
            if tick in self._seen:
                tick = self._resolve_collision(tick, rng)
            self._seen.add(tick)
        return self.now - tick * self.resolution

    def _draw_tick(self, rng: random.Random) -> int:
        u = rng.random()
        if self._mass > 0:
            age_days = -math.log(1 - u * self._mass) / self.decay
        else:
            age_days = u * self._window_days
        tick = int(age_days * 86400 / self.resolution.total_seconds())
        return min(max(tick, 0), self._max_tick)

    def _resolve_collision(self, tick: int, rng: random.Random) -> int:
        self.collisions += 1
        jitter = 1
        for _ in range(self.widening_rounds):
            for _ in range(self.attempts_per_round):
                delta = rng.randint(1, jitter) * rng.choice((-1, 1))
                candidate = min(max(tick + delta, 0), self._max_tick)
                if candidate not in self._seen:
                    return candidate
            jitter *= JITTER_GROWTH

        logger.error(
            "[DATA_SEEDER] Timestamp retry budget exhausted after %s issued timestamps",
            len(self._seen),
        )
        raise GenerationError(
            f"Could not allocate a unique timestamp near {self.now - tick * self.resolution} "
            f"after {self.widening_rounds * self.attempts_per_round} attempts."
        )
