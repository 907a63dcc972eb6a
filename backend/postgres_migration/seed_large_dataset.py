"""Seed a large synthetic users/transactions dataset.

Usage examples:
  python postgres_migration/seed_large_dataset.py
  python postgres_migration/seed_large_dataset.py --users 100 --transactions 1000 --batch-size 50 --random-seed 42
  python postgres_migration/seed_large_dataset.py --transactions 2000000 --workers 4 --create-tables

Runs append; use reset_database.py to truncate first. Ctrl-C stops after the
batch in flight and exits with status 130.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

# Add backend directory to import path when executed from backend/ or backend/postgres_migration/
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from app.database import Base, SessionLocal, engine
from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.seeder import ConfigurationError, DataSeederSettings, GenerationConfig, SeederError, seed_database

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer '{raw}'.") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"Expected a value >= 0, got {value}.")
    return value


def _positive_int(raw: str) -> int:
    value = _non_negative_int(raw)
    if value == 0:
        raise argparse.ArgumentTypeError("Expected a value >= 1, got 0.")
    return value


def build_parser(settings: DataSeederSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed synthetic users and transactions in batches")
    parser.add_argument(
        "--users",
        type=_non_negative_int,
        default=settings.user_count,
        help=f"Number of users to create (default: {settings.user_count})",
    )
    parser.add_argument(
        "--transactions",
        type=_non_negative_int,
        default=settings.transaction_count,
        help=f"Number of transactions to create (default: {settings.transaction_count})",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=settings.batch_size,
        help=f"Rows per insert batch (default: {settings.batch_size})",
    )
    parser.add_argument(
        "--random-seed",
        type=int,
        default=settings.random_seed,
        help="Seed for reproducible output (default: random)",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=settings.workers,
        help="Transaction generator threads; above 1 the row order is not reproducible",
    )
    parser.add_argument(
        "--currency",
        default=settings.currency,
        help=f"ISO currency code for every transaction (default: {settings.currency})",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables from the SQLAlchemy models before seeding",
    )
    return parser


def _install_interrupt_handler(cancel_event: threading.Event):
    def _handler(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        print("\nCancelling after the current batch (Ctrl-C again to abort)...", file=sys.stderr)
        cancel_event.set()

    return signal.signal(signal.SIGINT, _handler)


def _print_summary(title: str, summary, stream=None) -> None:
    stream = stream or sys.stdout
    print(f"\n{title}", file=stream)
    print(f"- users_created: {summary.users_created}", file=stream)
    print(f"- transactions_created: {summary.transactions_created}", file=stream)
    print(f"- users_elapsed_seconds: {summary.users_elapsed_seconds:.2f}", file=stream)
    print(f"- transactions_elapsed_seconds: {summary.transactions_elapsed_seconds:.2f}", file=stream)
    print(f"- elapsed_seconds: {summary.elapsed_seconds:.2f}", file=stream)


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    settings = DataSeederSettings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)

    try:
        base = GenerationConfig.from_settings(settings)
        config = GenerationConfig(
            user_count=args.users,
            transaction_count=args.transactions,
            batch_size=args.batch_size,
            random_seed=args.random_seed,
            currency=args.currency,
            tier_multipliers=base.tier_multipliers,
            recency_decay=base.recency_decay,
            progress_log_every=base.progress_log_every,
            workers=args.workers,
            queue_size=base.queue_size,
        )
    except ConfigurationError as exc:
        print(f"Invalid arguments: {exc}", file=sys.stderr)
        return EXIT_USAGE

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    cancel_event = threading.Event()
    previous_handler = _install_interrupt_handler(cancel_event)

    try:
        summary = seed_database(config, SessionLocal, cancel_event=cancel_event)
    except SeederError as exc:
        print(f"Seeding failed: {exc}", file=sys.stderr)
        if exc.summary is not None:
            _print_summary("Persisted before failure", exc.summary, stream=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        print("Seeding aborted.", file=sys.stderr)
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if summary.cancelled:
        _print_summary("Seeding cancelled", summary)
        return EXIT_CANCELLED

    _print_summary("Seeding completed successfully", summary)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
