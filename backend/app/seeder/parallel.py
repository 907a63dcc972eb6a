"""Parallel transaction generation feeding a single writer."""

from __future__ import annotations

import logging
import queue
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Sequence

from app.seeder.errors import ConfigurationError
from app.seeder.records import PersistedUser, TransactionRecord
from app.seeder.sampling import WeightedSampler
from app.seeder.transactions import TransactionFactory

logger = logging.getLogger(__name__)

PUT_TIMEOUT_SECONDS = 0.1

_DONE = object()


class _WorkerFailure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


class ParallelTransactionProducer:
    """
    Runs ``workers`` generator threads that publish into a bounded queue.

    The caller iterates the returned generator on one thread (the writer), so
    batch flushes stay sequential. A full queue blocks producers, which caps
    memory when storage is slower than generation. Each worker gets its own
    ``random.Random`` seeded from the run's rng; the shared TimestampAllocator
    serialises uniqueness checks behind its lock. Output order depends on
    thread scheduling.
    """

    def __init__(self, factory: TransactionFactory, workers: int, queue_size: int):
        if workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {workers}")
        if queue_size < 1:
            raise ConfigurationError(f"queue_size must be >= 1, got {queue_size}")
        self.factory = factory
        self.workers = workers
        self.queue_size = queue_size

    def generate(
        self,
        count: int,
        rng: random.Random,
        user_pool: Sequence[PersistedUser],
    ) -> Iterator[TransactionRecord]:
        if count < 0:
            raise ConfigurationError(f"Transaction count must be >= 0, got {count}")
        sampler = self.factory.user_sampler(user_pool)
        shares = split_count(count, self.workers)
        seeds = [rng.getrandbits(64) for _ in shares]
        return self._consume(shares, seeds, sampler)

    def _consume(
        self,
        shares: List[int],
        seeds: List[int],
        sampler: WeightedSampler[PersistedUser],
    ) -> Iterator[TransactionRecord]:
        records: "queue.Queue[object]" = queue.Queue(maxsize=self.queue_size)
        stop = threading.Event()

        logger.info(
            "[DATA_SEEDER] Starting %s transaction producers (queue size %s)",
            len(shares),
            self.queue_size,
        )
        executor = ThreadPoolExecutor(max_workers=len(shares), thread_name_prefix="seed-producer")
        try:
            for share, seed in zip(shares, seeds):
                executor.submit(self._produce, share, random.Random(seed), sampler, records, stop)

            finished = 0
            while finished < len(shares):
                item = records.get()
                if item is _DONE:
                    finished += 1
                elif isinstance(item, _WorkerFailure):
                    raise item.error
                else:
                    yield item
        finally:
            # Releases producers blocked on a full queue when the consumer stops early.
            stop.set()
            executor.shutdown(wait=True)

    def _produce(
        self,
        count: int,
        rng: random.Random,
        sampler: WeightedSampler[PersistedUser],
        records: "queue.Queue[object]",
        stop: threading.Event,
    ) -> None:
        try:
            for _ in range(count):
                if stop.is_set():
                    return
                if not _put(records, self.factory.generate_one(rng, sampler), stop):
                    return
        except Exception as exc:  # noqa: BLE001
            logger.exception("[DATA_SEEDER] Transaction producer failed: %s", exc)
            _put(records, _WorkerFailure(exc), stop)
            return
        _put(records, _DONE, stop)


def _put(records: "queue.Queue[object]", item: object, stop: threading.Event) -> bool:
    while True:
        try:
            records.put(item, timeout=PUT_TIMEOUT_SECONDS)
            return True
        except queue.Full:
            if stop.is_set():
                return False


def split_count(count: int, workers: int) -> List[int]:
    """Split ``count`` into at most ``workers`` near-equal positive shares."""
    workers = max(1, min(workers, count)) if count > 0 else 1
    base, remainder = divmod(count, workers)
    return [base + (1 if index < remainder else 0) for index in range(workers)]
