"""
Tests for the bounded batch writer.
"""
import os
import sys
import threading

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from app.seeder.errors import ConfigurationError, PersistenceError, SeedingCancelled  # noqa: E402
from app.seeder.writer import BatchWriter  # noqa: E402


def test_flushes_full_batches_and_trailing_partial():
    persisted = []
    writer = BatchWriter("users", 3, persisted.append, total=10)

    assert writer.write_all(range(10)) == 10
    assert [len(batch) for batch in persisted] == [3, 3, 3]
    assert writer.buffered == 1

    writer.flush()
    assert [len(batch) for batch in persisted] == [3, 3, 3, 1]
    assert writer.completed == 10
    assert writer.flush_count == 4
    assert writer.peak_buffered <= 3
    print("✓ Full batches flushed on write, trailing batch on flush()")


def test_empty_flush_is_noop():
    persisted = []
    writer = BatchWriter("users", 5, persisted.append, total=0)
    writer.flush()
    assert persisted == []
    assert writer.flush_count == 0
    print("✓ flush() with an empty buffer does nothing")


def test_progress_events_per_flush():
    events = []
    writer = BatchWriter("transactions", 4, lambda batch: None, total=10, progress_sink=events.append)
    writer.write_all(range(10))
    writer.flush()

    assert [event.batch_number for event in events] == [1, 2, 3]
    assert [event.completed for event in events] == [4, 8, 10]
    assert events[-1].is_final
    assert events[-1].percent == 100
    assert all(event.phase == "transactions" for event in events)
    print("✓ One progress event per flushed batch")


def test_on_persisted_receives_batch_and_result():
    received = []
    writer = BatchWriter(
        "users",
        2,
        lambda batch: [value * 10 for value in batch],
        total=4,
        on_persisted=lambda batch, result: received.append((list(batch), result)),
    )
    writer.write_all([1, 2, 3, 4])
    assert received == [([1, 2], [10, 20]), ([3, 4], [30, 40])]
    print("✓ Store result handed to on_persisted")


def test_completed_counts_batch_when_on_persisted_fails():
    def reject_ids(batch, result):
        raise PersistenceError("store returned no ids")

    writer = BatchWriter("users", 3, lambda batch: None, total=3, on_persisted=reject_ids)
    with pytest.raises(PersistenceError):
        writer.write_all([1, 2, 3])

    assert writer.completed == 3
    assert writer.flush_count == 1
    print("✓ Committed batch counted even when on_persisted fails")


def test_unexpected_errors_wrapped_in_persistence_error():
    def failing(batch):
        raise ValueError("disk full")

    writer = BatchWriter("users", 2, failing, total=4)
    with pytest.raises(PersistenceError) as exc_info:
        writer.write_all([1, 2])
    assert isinstance(exc_info.value.__cause__, ValueError)
    assert writer.completed == 0
    print("✓ Store failures surface as PersistenceError")


def test_persistence_error_propagates_unchanged():
    error = PersistenceError("constraint violated")

    def failing(batch):
        raise error

    writer = BatchWriter("users", 1, failing, total=1)
    with pytest.raises(PersistenceError) as exc_info:
        writer.write("row")
    assert exc_info.value is error
    print("✓ PersistenceError from the store is not re-wrapped")


def test_cancellation_checked_after_flush():
    cancel = threading.Event()
    persisted = []

    def persist(batch):
        persisted.append(batch)
        cancel.set()

    writer = BatchWriter("transactions", 5, persist, total=20, cancel_event=cancel)
    with pytest.raises(SeedingCancelled):
        writer.write_all(range(20))

    assert len(persisted) == 1
    assert writer.completed == 5
    print("✓ Cancellation stops the writer after the in-flight batch")


def test_batch_size_must_be_positive():
    with pytest.raises(ConfigurationError):
        BatchWriter("users", 0, lambda batch: None, total=1)
    print("✓ Non-positive batch size rejected")


if __name__ == "__main__":
    print("Running batch writer tests...\n")
    test_flushes_full_batches_and_trailing_partial()
    test_empty_flush_is_noop()
    test_progress_events_per_flush()
    test_on_persisted_receives_batch_and_result()
    test_completed_counts_batch_when_on_persisted_fails()
    test_unexpected_errors_wrapped_in_persistence_error()
    test_persistence_error_propagates_unchanged()
    test_cancellation_checked_after_flush()
    test_batch_size_must_be_positive()
    print("\n✅ All batch writer tests passed!")
