"""
Storage boundary for the seeder.

Each batch is written in its own session: add_all, flush to obtain ids, commit,
close. Closing the session drops every ORM instance from the identity map,
which is what keeps memory flat across hundreds of batches.
"""
import logging
from typing import Callable, List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import Transaction, User
from app.seeder.errors import PersistenceError
from app.seeder.records import TransactionRecord, UserRecord

logger = logging.getLogger(__name__)


class SeedStore:
    """Interface consumed by the pipeline."""

    def insert_users(self, batch: Sequence[UserRecord]) -> List[int]:
        raise NotImplementedError

    def insert_transactions(self, batch: Sequence[TransactionRecord]) -> None:
        raise NotImplementedError


class SqlAlchemySeedStore(SeedStore):
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def insert_users(self, batch: Sequence[UserRecord]) -> List[int]:
        rows = [_user_row(record) for record in batch]
        db = self.session_factory()
        try:
            db.add_all(rows)
            db.flush()
            ids = [row.id for row in rows]
            db.commit()
            return ids
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("[DATA_SEEDER] User batch insert failed (%s rows): %s", len(rows), exc)
            raise PersistenceError(f"User batch insert failed: {exc}") from exc
        finally:
            db.close()

    def insert_transactions(self, batch: Sequence[TransactionRecord]) -> None:
        rows = [_transaction_row(record) for record in batch]
        db = self.session_factory()
        try:
            db.add_all(rows)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("[DATA_SEEDER] Transaction batch insert failed (%s rows): %s", len(rows), exc)
            raise PersistenceError(f"Transaction batch insert failed: {exc}") from exc
        finally:
            db.close()


def _user_row(record: UserRecord) -> User:
    return User(
        full_name=record.full_name,
        email=record.email,
        phone_number=record.phone_number,
        role=record.role.value,
        status=record.status.value,
        activity_tier=record.activity_tier.value,
        created_at=record.created_at,
        updated_at=record.created_at,
    )


def _transaction_row(record: TransactionRecord) -> Transaction:
    return Transaction(
        user_id=record.user_id,
        amount=record.amount,
        currency=record.currency,
        type=record.type.value,
        status=record.status.value,
        payment_method=record.payment_method.value,
        payment_provider=record.payment_provider,
        failure_reason=record.failure_reason,
        created_at=record.created_at,
        updated_at=record.created_at,
    )
