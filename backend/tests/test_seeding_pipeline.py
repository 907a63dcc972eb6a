"""
End-to-end tests for the two-phase seeding pipeline.

Persistence runs against in-memory SQLite with the real models.

Run with:
  cd backend && python tests/test_seeding_pipeline.py
"""
import os
import sys
import threading
from datetime import datetime

import pytest
from sqlalchemy import create_engine, func
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.database import Base  # noqa: E402
from app.models import Transaction, User  # noqa: E402
from app.seeder.config import GenerationConfig  # noqa: E402
from app.seeder.errors import ConfigurationError, PersistenceError  # noqa: E402
from app.seeder.pipeline import SeedingPipeline, seed_database  # noqa: E402
from app.seeder.store import SeedStore, SqlAlchemySeedStore  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0, 0)


def _sqlite_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class InMemoryStore(SeedStore):
    """Assigns sequential ids and records batch sizes."""

    def __init__(self, fail_on_transaction_batch=None):
        self.users = []
        self.transactions = []
        self.batch_sizes = []
        self.fail_on_transaction_batch = fail_on_transaction_batch
        self._transaction_batches = 0

    def insert_users(self, batch):
        start = len(self.users) + 1
        self.users.extend(batch)
        self.batch_sizes.append(len(batch))
        return list(range(start, start + len(batch)))

    def insert_transactions(self, batch):
        self._transaction_batches += 1
        if self._transaction_batches == self.fail_on_transaction_batch:
            raise PersistenceError("simulated database outage")
        self.transactions.extend(batch)
        self.batch_sizes.append(len(batch))


def _scenario_config(**overrides) -> GenerationConfig:
    values = dict(user_count=100, transaction_count=1000, batch_size=50, random_seed=42)
    values.update(overrides)
    return GenerationConfig(**values)


def test_scenario_persists_exact_counts():
    session_factory = _sqlite_session_factory()
    events = []
    pipeline = SeedingPipeline(
        SqlAlchemySeedStore(session_factory),
        _scenario_config(),
        progress_sink=events.append,
        now=NOW,
    )
    summary = pipeline.run()

    assert summary.users_created == 100
    assert summary.transactions_created == 1000
    assert not summary.cancelled
    assert len([e for e in events if e.phase == "users"]) == 2
    assert len([e for e in events if e.phase == "transactions"]) == 20

    db = session_factory()
    try:
        assert db.query(func.count(User.id)).scalar() == 100
        assert db.query(func.count(Transaction.id)).scalar() == 1000
        assert db.query(func.count(func.distinct(Transaction.created_at))).scalar() == 1000

        user_ids = {row[0] for row in db.query(User.id).all()}
        for tx in db.query(Transaction).all():
            assert tx.user_id in user_ids
            assert tx.amount > 0
            assert (tx.failure_reason is not None) == (tx.status == "FAILED")
            assert tx.created_at <= NOW
    finally:
        db.close()
    print("✓ 100 users / 1000 transactions in 2 + 20 batches")


def test_same_seed_reproduces_dataset():
    first, second = InMemoryStore(), InMemoryStore()
    for store in (first, second):
        SeedingPipeline(
            store, _scenario_config(), now=NOW, run_tag="fixed1", phone_start=7100000000
        ).run()

    assert first.users == second.users
    assert first.transactions == second.transactions
    print("✓ Fixed seed and clock reproduce the dataset")


def test_batches_never_exceed_batch_size():
    store = InMemoryStore()
    SeedingPipeline(store, _scenario_config(transaction_count=1013), now=NOW).run()

    assert max(store.batch_sizes) <= 50
    assert len(store.transactions) == 1013
    print("✓ No batch larger than batch_size")


def test_batch_size_larger_than_counts():
    store = InMemoryStore()
    summary = SeedingPipeline(store, _scenario_config(batch_size=5000), now=NOW).run()

    assert store.batch_sizes == [100, 1000]
    assert summary.transactions_created == 1000
    print("✓ Oversized batch flushes once per phase")


def test_zero_users_with_transactions_fails_in_phase_two():
    store = InMemoryStore()
    pipeline = SeedingPipeline(store, _scenario_config(user_count=0, transaction_count=10), now=NOW)

    with pytest.raises(ConfigurationError) as exc_info:
        pipeline.run()

    assert exc_info.value.summary.users_created == 0
    assert exc_info.value.summary.transactions_created == 0
    assert store.transactions == []
    print("✓ Transactions without users rejected")


def test_zero_counts_complete_immediately():
    summary = SeedingPipeline(
        InMemoryStore(), _scenario_config(user_count=0, transaction_count=0), now=NOW
    ).run()
    assert summary.users_created == 0
    assert summary.transactions_created == 0
    assert not summary.cancelled
    print("✓ Empty run completes")


def test_persistence_failure_carries_partial_summary():
    store = InMemoryStore(fail_on_transaction_batch=3)
    pipeline = SeedingPipeline(store, _scenario_config(), now=NOW)

    with pytest.raises(PersistenceError) as exc_info:
        pipeline.run()

    summary = exc_info.value.summary
    assert summary.users_created == 100
    assert summary.transactions_created == 100
    assert len(store.transactions) == 100
    print("✓ Failure reports rows committed before the failing batch")


def test_cancellation_between_batches():
    cancel = threading.Event()

    def cancel_after_third_batch(event):
        if event.phase == "transactions" and event.batch_number == 3:
            cancel.set()

    store = InMemoryStore()
    summary = SeedingPipeline(
        store,
        _scenario_config(),
        progress_sink=cancel_after_third_batch,
        now=NOW,
        cancel_event=cancel,
    ).run()

    assert summary.cancelled
    assert summary.users_created == 100
    assert summary.transactions_created == 150
    assert len(store.transactions) == 150
    print("✓ Cancellation returns a summary after the in-flight batch")


def test_rerun_appends_without_unique_violations():
    session_factory = _sqlite_session_factory()
    for seed in (None, 42):
        config = _scenario_config(user_count=30, transaction_count=60, batch_size=25, random_seed=seed)
        first = seed_database(config, session_factory)
        second = seed_database(config, session_factory)
        assert first.users_created == second.users_created == 30
        assert first.transactions_created == second.transactions_created == 60

    db = session_factory()
    try:
        assert db.query(func.count(User.id)).scalar() == 120
        assert db.query(func.count(Transaction.id)).scalar() == 240
        assert db.query(func.count(func.distinct(User.email))).scalar() == 120
        assert db.query(func.count(func.distinct(User.phone_number))).scalar() == 120
    finally:
        db.close()
    print("✓ Reruns append a new dataset, with or without a fixed seed")


def test_summary_as_dict():
    summary = SeedingPipeline(InMemoryStore(), _scenario_config(), now=NOW).run()
    data = summary.as_dict()
    assert data["users_created"] == 100
    assert data["transactions_created"] == 1000
    assert data["cancelled"] is False
    assert set(data) == {
        "users_created",
        "transactions_created",
        "elapsed_seconds",
        "users_elapsed_seconds",
        "transactions_elapsed_seconds",
        "cancelled",
    }
    print("✓ Summary serializes to a plain dict")


if __name__ == "__main__":
    print("Running seeding pipeline tests...\n")
    test_scenario_persists_exact_counts()
    test_same_seed_reproduces_dataset()
    test_batches_never_exceed_batch_size()
    test_batch_size_larger_than_counts()
    test_zero_users_with_transactions_fails_in_phase_two()
    test_zero_counts_complete_immediately()
    test_persistence_failure_carries_partial_summary()
    test_cancellation_between_batches()
    test_rerun_appends_without_unique_violations()
    test_summary_as_dict()
    print("\n✅ All seeding pipeline tests passed!")
