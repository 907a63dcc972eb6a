"""Activity tiers for synthetic users.

Tier decides two things: how far back the account may have been created, and
how heavily the user is weighted when transactions pick an owner.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Dict, Mapping, Optional, Tuple

from app.seeder.config import DEFAULT_TIER_MULTIPLIERS
from app.seeder.records import ActivityTier
from app.seeder.sampling import WeightedSampler

TIER_WEIGHTS: Tuple[Tuple[ActivityTier, float], ...] = (
    (ActivityTier.HIGH, 10),
    (ActivityTier.NORMAL, 70),
    (ActivityTier.LOW, 15),
    (ActivityTier.NEW, 5),
)

NEW_USER_WINDOW = timedelta(days=30)
ESTABLISHED_USER_WINDOW = timedelta(days=182)


class ActivityProfileAssigner:
    """Assigns a tier and a creation timestamp relative to the run's ``now``."""

    def __init__(
        self,
        now: datetime,
        multipliers: Optional[Mapping[ActivityTier, float]] = None,
    ):
        self.now = now
        self._sampler: WeightedSampler[ActivityTier] = WeightedSampler(TIER_WEIGHTS)
        self._multipliers: Dict[ActivityTier, float] = dict(multipliers or DEFAULT_TIER_MULTIPLIERS)

    def assign(self, rng: random.Random) -> Tuple[ActivityTier, datetime]:
        tier = self._sampler.sample(rng)
        window = NEW_USER_WINDOW if tier is ActivityTier.NEW else ESTABLISHED_USER_WINDOW
        offset_seconds = rng.uniform(0, window.total_seconds())
        return tier, self.now - timedelta(seconds=offset_seconds)

    def multiplier(self, tier: ActivityTier) -> float:
        return self._multipliers[tier]

    @property
    def multipliers(self) -> Dict[ActivityTier, float]:
        return dict(self._multipliers)
