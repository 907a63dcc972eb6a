"""Discrete weighted sampling backed by a cumulative-weight table."""

from __future__ import annotations

import math
import random
from bisect import bisect_right
from itertools import accumulate
from typing import Generic, Iterable, List, Mapping, Sequence, Tuple, TypeVar, Union

from app.seeder.errors import ConfigurationError

T = TypeVar("T")


class WeightedSampler(Generic[T]):
    """Draws labels from a fixed discrete distribution.

    The cumulative table is built once, so each draw is one ``rng.random()`` call
    plus a binary search regardless of how many labels there are. The sampler
    keeps no random state; pass the run's ``random.Random`` to :meth:`sample`.
    """

    __slots__ = ("_labels", "_cumulative", "_total")

    def __init__(self, weights: Union[Mapping[T, float], Iterable[Tuple[T, float]]]):
        pairs: Sequence[Tuple[T, float]] = (
            list(weights.items()) if isinstance(weights, Mapping) else list(weights)
        )
        if not pairs:
            raise ConfigurationError("Weighted distribution must contain at least one outcome.")

        labels: List[T] = []
        values: List[float] = []
        for label, weight in pairs:
            try:
                value = float(weight)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Weight for {label!r} is not a number: {weight!r}") from exc
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(
                    f"Weight for {label!r} must be a positive finite number, got {weight!r}."
                )
            labels.append(label)
            values.append(value)

        self._labels = labels
        self._cumulative = list(accumulate(values))
        self._total = self._cumulative[-1]

    @property
    def labels(self) -> List[T]:
        return list(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def probability(self, label: T) -> float:
        """Normalized probability of ``label`` (0.0 when absent)."""
        total = 0.0
        previous = 0.0
        for candidate, upper in zip(self._labels, self._cumulative):
            if candidate == label:
                total += upper - previous
            previous = upper
        return total / self._total

    def sample(self, rng: random.Random) -> T:
        point = rng.random() * self._total
        index = bisect_right(self._cumulative, point)
        # rng.random() < 1.0, but float rounding of the product can land on the total.
        if index >= len(self._labels):
            index = len(self._labels) - 1
        return self._labels[index]
