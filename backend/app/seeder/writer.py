"""Bounded-memory batching between generators and the storage boundary."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from app.seeder.errors import ConfigurationError, PersistenceError, SeedingCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ProgressEvent:
    phase: str
    completed: int
    total: int
    elapsed_seconds: float
    batch_number: int

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return self.completed * 100 // self.total

    @property
    def rows_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.completed / self.elapsed_seconds

    @property
    def is_final(self) -> bool:
        return self.completed >= self.total


ProgressSink = Callable[[ProgressEvent], None]


class BatchWriter(Generic[T]):
    """
    Buffers entities and hands them to ``persist`` one batch at a time.

    The buffer is replaced after every flush, so at most ``batch_size`` entities
    are held regardless of how many pass through. ``persist`` failures abort the
    phase; nothing is retried and earlier batches stay committed.
    """

    def __init__(
        self,
        phase: str,
        batch_size: int,
        persist: Callable[[List[T]], Any],
        total: int,
        progress_sink: Optional[ProgressSink] = None,
        on_persisted: Optional[Callable[[Sequence[T], Any], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        if batch_size <= 0:
            raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        self.phase = phase
        self.batch_size = batch_size
        self.total = total
        self._persist = persist
        self._progress_sink = progress_sink
        self._on_persisted = on_persisted
        self._cancel_event = cancel_event
        self._buffer: List[T] = []
        self._started = time.monotonic()

        self.completed = 0
        self.flush_count = 0
        self.peak_buffered = 0

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started

    def write(self, entity: T) -> None:
        self._buffer.append(entity)
        if len(self._buffer) > self.peak_buffered:
            self.peak_buffered = len(self._buffer)
        if len(self._buffer) >= self.batch_size:
            self.flush()

    def write_all(self, entities) -> int:
        written = 0
        for entity in entities:
            self.write(entity)
            written += 1
        return written

    def flush(self) -> None:
        if not self._buffer:
            return

        batch = self._buffer
        self._buffer = []
        try:
            result = self._persist(batch)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Failed to persist {self.phase} batch {self.flush_count + 1} "
                f"({len(batch)} rows): {exc}"
            ) from exc

        self.completed += len(batch)
        self.flush_count += 1

        if self._on_persisted is not None:
            self._on_persisted(batch, result)

        if self._progress_sink is not None:
            self._progress_sink(
                ProgressEvent(
                    phase=self.phase,
                    completed=self.completed,
                    total=self.total,
                    elapsed_seconds=self.elapsed_seconds,
                    batch_number=self.flush_count,
                )
            )

        if self._cancel_event is not None and self._cancel_event.is_set():
            logger.warning(
                "[DATA_SEEDER] Cancellation requested; stopping %s after %s/%s rows",
                self.phase,
                self.completed,
                self.total,
            )
            raise SeedingCancelled(f"Seeding cancelled during {self.phase} phase.")
