"""
Tests for unique, recency-weighted transaction timestamps.
"""
import os
import random
import sys
import threading
from datetime import datetime, timedelta

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.seeder.errors import ConfigurationError, GenerationError  # noqa: E402
from app.seeder.timestamps import TRANSACTION_WINDOW, TimestampAllocator  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, 0)


class _ConstantDrawRandom(random.Random):
    """Every base draw lands on the same tick; jitter still uses getrandbits."""

    def random(self):
        return 0.5

    def getrandbits(self, k):
        return super().getrandbits(k)


def test_timestamps_unique_and_inside_window():
    allocator = TimestampAllocator(NOW)
    rng = random.Random(42)
    stamps = [allocator.allocate(rng) for _ in range(20000)]

    assert len(set(stamps)) == 20000
    assert allocator.issued == 20000
    assert min(stamps) >= NOW - TRANSACTION_WINDOW
    assert max(stamps) <= NOW
    print("✓ 20,000 unique timestamps within the last 90 days")


def test_recent_days_are_denser():
    allocator = TimestampAllocator(NOW, decay=0.02)
    rng = random.Random(8)
    stamps = [allocator.allocate(rng) for _ in range(10000)]

    recent = sum(1 for ts in stamps if ts >= NOW - timedelta(days=30))
    oldest = sum(1 for ts in stamps if ts < NOW - timedelta(days=60))
    assert recent > 2 * oldest
    print(f"✓ Last 30 days hold {recent} rows vs {oldest} in the oldest 30")


def test_zero_decay_is_uniform():
    allocator = TimestampAllocator(NOW, decay=0.0)
    rng = random.Random(8)
    stamps = [allocator.allocate(rng) for _ in range(9000)]

    recent = sum(1 for ts in stamps if ts >= NOW - timedelta(days=30))
    assert abs(recent / 9000 - 1 / 3) < 0.03
    print("✓ Zero decay spreads timestamps evenly")


def test_collisions_resolved_with_jitter():
    allocator = TimestampAllocator(
        NOW, decay=0.0, window=timedelta(seconds=1000), resolution=timedelta(seconds=1)
    )
    rng = _ConstantDrawRandom(1)
    stamps = [allocator.allocate(rng) for _ in range(5)]

    assert len(set(stamps)) == 5
    assert allocator.collisions == 4
    print("✓ Colliding draws nudged to free ticks")


def test_exhausted_retry_budget_raises():
    allocator = TimestampAllocator(NOW, window=timedelta(0))
    rng = random.Random(2)
    assert allocator.allocate(rng) == NOW
    with pytest.raises(GenerationError):
        allocator.allocate(rng)
    print("✓ GenerationError once no free tick can be found")


def test_invalid_arguments():
    with pytest.raises(ConfigurationError):
        TimestampAllocator(NOW, resolution=timedelta(0))
    with pytest.raises(ConfigurationError):
        TimestampAllocator(NOW, decay=-0.1)
    with pytest.raises(ConfigurationError):
        TimestampAllocator(NOW, attempts_per_round=0)
    print("✓ Invalid allocator arguments rejected")


def test_shared_allocator_across_threads():
    allocator = TimestampAllocator(NOW)
    results = [[] for _ in range(4)]

    def worker(index: int) -> None:
        rng = random.Random(index)
        results[index] = [allocator.allocate(rng) for _ in range(2000)]

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    stamps = [ts for chunk in results for ts in chunk]
    assert len(stamps) == 8000
    assert len(set(stamps)) == 8000
    print("✓ Timestamps stay unique across threads")


if __name__ == "__main__":
    print("Running timestamp allocator tests...\n")
    test_timestamps_unique_and_inside_window()
    test_recent_days_are_denser()
    test_zero_decay_is_uniform()
    test_collisions_resolved_with_jitter()
    test_exhausted_retry_budget_raises()
    test_invalid_arguments()
    test_shared_allocator_across_threads()
    print("\n✅ All timestamp allocator tests passed!")
