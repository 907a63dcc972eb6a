"""
Two-phase seeding run: users first, then transactions over the persisted users.

Phase 1 streams generated users through a BatchWriter and keeps only the
(id, tier) handle of each persisted row. Phase 2 streams transactions, owned by
users from that pool, through a second BatchWriter. Neither phase holds more
than one batch of entities in memory.
"""
from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.seeder.config import GenerationConfig
from app.seeder.errors import (
    ConfigurationError,
    PersistenceError,
    SeederError,
    SeedingCancelled,
)
from app.seeder.parallel import ParallelTransactionProducer
from app.seeder.profiles import ActivityProfileAssigner
from app.seeder.progress import CompositeProgressSink, LoggingProgressSink
from app.seeder.records import PersistedUser, TransactionRecord, UserRecord
from app.seeder.store import SeedStore, SqlAlchemySeedStore
from app.seeder.timestamps import TimestampAllocator
from app.seeder.transactions import TransactionFactory
from app.seeder.users import PHONE_MAX, PHONE_MIN, UserFactory
from app.seeder.writer import BatchWriter, ProgressSink

logger = logging.getLogger(__name__)

USERS_PHASE = "users"
TRANSACTIONS_PHASE = "transactions"


@dataclass
class SeedingSummary:
    users_created: int = 0
    transactions_created: int = 0
    elapsed_seconds: float = 0.0
    users_elapsed_seconds: float = 0.0
    transactions_elapsed_seconds: float = 0.0
    cancelled: bool = False

    def as_dict(self) -> dict:
        data = asdict(self)
        for key in ("elapsed_seconds", "users_elapsed_seconds", "transactions_elapsed_seconds"):
            data[key] = round(data[key], 3)
        return data


class SeedingPipeline:
    """
    Drives one seeding run against a SeedStore.

    The pipeline is not idempotent: running it twice appends a second dataset.
    Users get a per-run email tag and phone offset so the unique constraints
    hold across runs. Both come from outside the seeded rng; pass them in to
    reproduce a run exactly.
    """

    def __init__(
        self,
        store: SeedStore,
        config: GenerationConfig,
        progress_sink: Optional[ProgressSink] = None,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
        run_tag: Optional[str] = None,
        phone_start: Optional[int] = None,
    ):
        self.store = store
        self.config = config
        self.now = now or datetime.utcnow()
        self.rng = rng or random.Random(config.random_seed)
        self.cancel_event = cancel_event
        self.run_tag = run_tag or uuid.uuid4().hex[:6]
        self.phone_start = (
            phone_start if phone_start is not None else random.SystemRandom().randint(PHONE_MIN, PHONE_MAX)
        )
        self.progress_sink = CompositeProgressSink(
            [LoggingProgressSink(config.progress_log_every), progress_sink]
        )

        self.profiles = ActivityProfileAssigner(self.now, config.tier_multipliers)
        self.timestamps = TimestampAllocator(self.now, decay=config.recency_decay)
        self.transaction_factory = TransactionFactory(
            self.timestamps, config.tier_multipliers, currency=config.currency
        )

        self._writers: Dict[str, BatchWriter] = {}
        self._phase_elapsed: Dict[str, float] = {}

    def run(self) -> SeedingSummary:
        config = self.config
        started = time.monotonic()
        logger.info(
            "[DATA_SEEDER] Starting seed: %s users, %s transactions "
            "(batch size %s, workers %s, seed %s)",
            config.user_count,
            config.transaction_count,
            config.batch_size,
            config.workers,
            config.random_seed,
        )

        try:
            user_pool = self._seed_users()
            if config.transaction_count > 0:
                self._seed_transactions(user_pool)
        except SeedingCancelled:
            summary = self._summary(started, cancelled=True)
            logger.warning(
                "[DATA_SEEDER] Seeding cancelled: %s users, %s transactions persisted",
                summary.users_created,
                summary.transactions_created,
            )
            return summary
        except SeederError as exc:
            exc.summary = self._summary(started)
            logger.exception("[DATA_SEEDER] Seeding failed: %s", exc)
            logger.error(
                "[DATA_SEEDER] Persisted before failure: %s users, %s transactions",
                exc.summary.users_created,
                exc.summary.transactions_created,
            )
            raise

        summary = self._summary(started)
        logger.info(
            "[DATA_SEEDER] Seeding complete: %s users, %s transactions in %.2fs",
            summary.users_created,
            summary.transactions_created,
            summary.elapsed_seconds,
        )
        return summary

    def _seed_users(self) -> List[PersistedUser]:
        config = self.config
        user_pool: List[PersistedUser] = []

        def collect(batch: Sequence[UserRecord], ids: Sequence[int]) -> None:
            if ids is None or len(ids) != len(batch):
                raise PersistenceError(
                    f"Store returned {0 if ids is None else len(ids)} ids for {len(batch)} users"
                )
            user_pool.extend(
                PersistedUser(id=user_id, activity_tier=record.activity_tier)
                for record, user_id in zip(batch, ids)
            )

        factory = UserFactory(
            self.profiles,
            run_tag=self.run_tag,
            phone_start=self.phone_start,
        )
        writer: BatchWriter[UserRecord] = BatchWriter(
            USERS_PHASE,
            config.batch_size,
            self.store.insert_users,
            total=config.user_count,
            progress_sink=self.progress_sink,
            on_persisted=collect,
            cancel_event=self.cancel_event,
        )
        self._writers[USERS_PHASE] = writer
        try:
            writer.write_all(factory.generate(config.user_count, self.rng))
            writer.flush()
        finally:
            self._phase_elapsed[USERS_PHASE] = writer.elapsed_seconds

        _log_phase_complete(USERS_PHASE, writer.completed, self._phase_elapsed[USERS_PHASE])
        return user_pool

    def _seed_transactions(self, user_pool: Sequence[PersistedUser]) -> None:
        config = self.config
        if not user_pool:
            raise ConfigurationError(
                f"Cannot generate {config.transaction_count} transactions: no users were persisted."
            )

        if config.workers > 1:
            producer = ParallelTransactionProducer(
                self.transaction_factory, config.workers, config.queue_size
            )
            records = producer.generate(config.transaction_count, self.rng, user_pool)
        else:
            records = self.transaction_factory.generate(config.transaction_count, self.rng, user_pool)

        writer: BatchWriter[TransactionRecord] = BatchWriter(
            TRANSACTIONS_PHASE,
            config.batch_size,
            self.store.insert_transactions,
            total=config.transaction_count,
            progress_sink=self.progress_sink,
            cancel_event=self.cancel_event,
        )
        self._writers[TRANSACTIONS_PHASE] = writer
        try:
            writer.write_all(records)
            writer.flush()
        finally:
            # Stops parallel producers when the writer bails out early.
            records.close()
            self._phase_elapsed[TRANSACTIONS_PHASE] = writer.elapsed_seconds

        _log_phase_complete(
            TRANSACTIONS_PHASE, writer.completed, self._phase_elapsed[TRANSACTIONS_PHASE]
        )
        if self.timestamps.collisions:
            logger.info(
                "[DATA_SEEDER] Resolved %s timestamp collisions", self.timestamps.collisions
            )

    def _summary(self, started: float, cancelled: bool = False) -> SeedingSummary:
        return SeedingSummary(
            users_created=self._completed(USERS_PHASE),
            transactions_created=self._completed(TRANSACTIONS_PHASE),
            elapsed_seconds=time.monotonic() - started,
            users_elapsed_seconds=self._phase_elapsed.get(USERS_PHASE, 0.0),
            transactions_elapsed_seconds=self._phase_elapsed.get(TRANSACTIONS_PHASE, 0.0),
            cancelled=cancelled,
        )

    def _completed(self, phase: str) -> int:
        writer = self._writers.get(phase)
        return writer.completed if writer is not None else 0


def _log_phase_complete(phase: str, count: int, elapsed: float) -> None:
    throughput = count / elapsed if elapsed > 0 else 0.0
    logger.info(
        "[DATA_SEEDER] %s phase complete: %s rows in %.2fs (%.0f rows/s)",
        phase.capitalize(),
        count,
        elapsed,
        throughput,
    )


def seed_database(
    config: GenerationConfig,
    session_factory: Callable[[], Session],
    progress_sink: Optional[ProgressSink] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SeedingSummary:
    """Run the pipeline against a SQLAlchemy session factory."""
    pipeline = SeedingPipeline(
        SqlAlchemySeedStore(session_factory),
        config,
        progress_sink=progress_sink,
        cancel_event=cancel_event,
    )
    return pipeline.run()
