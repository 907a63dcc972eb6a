"""Exceptions raised by the data seeder."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.seeder.pipeline import SeedingSummary


class SeederError(RuntimeError):
    """Base class for seeder failures.

    The pipeline attaches a partial ``summary`` before re-raising so callers can
    report how many rows were committed before the failure.
    """

    def __init__(self, message: str, summary: Optional["SeedingSummary"] = None):
        super().__init__(message)
        self.summary = summary


class ConfigurationError(SeederError):
    """Invalid counts, batch size or distribution weights."""


class GenerationError(SeederError):
    """A generated value could not satisfy its invariant (timestamp uniqueness)."""


class PersistenceError(SeederError):
    """The storage boundary failed while flushing a batch."""


class SeedingCancelled(SeederError):
    """Raised between batches once the cancellation event is set."""
