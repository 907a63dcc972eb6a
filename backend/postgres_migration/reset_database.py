"""
Script to empty the seeded tables before a fresh seeding run.
WARNING: This will delete all users and transactions!

Usage:
  python postgres_migration/reset_database.py --yes
  python postgres_migration/reset_database.py --yes --recreate
"""
import argparse
import sys
from pathlib import Path

# Add backend directory to import path when executed from backend/ or backend/postgres_migration/
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from app.database import engine, Base
from app.models import Transaction, User

# Children first so the RESTRICT foreign key never blocks a delete.
SEEDED_TABLES = (Transaction.__tablename__, User.__tablename__)


def reset_database(recreate: bool = False) -> None:
    """Remove every seeded row, optionally dropping and recreating the tables."""
    print("⚠️  WARNING: This will delete all users and transactions!")

    if recreate:
        print("\nDropping seeded tables...")
        Base.metadata.drop_all(bind=engine)
        print("Creating tables with the current schema...")
        Base.metadata.create_all(bind=engine)
        print("✓ Tables recreated")
        return

    existing = set(inspect(engine).get_table_names())
    tables = [name for name in SEEDED_TABLES if name in existing]
    if not tables:
        print("No seeded tables found - nothing to reset")
        return

    with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            print(f"Truncating {', '.join(tables)}...")
            quoted = ", ".join(f'"{name}"' for name in tables)
            conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY"))
        else:
            for table_name in tables:
                print(f"  Deleting rows from {table_name}...")
                conn.execute(text(f'DELETE FROM "{table_name}"'))

    print("\n✅ Reset complete! You can now run seed_large_dataset.py")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete all seeded users and transactions")
    parser.add_argument("--yes", action="store_true", help="Confirm that all seeded data may be deleted")
    parser.add_argument("--recreate", action="store_true", help="Drop and recreate the tables instead of truncating")
    args = parser.parse_args(argv)

    if not args.yes:
        parser.error("Refusing to delete data without --yes")

    try:
        reset_database(recreate=args.recreate)
    except SQLAlchemyError as exc:
        print(f"✗ Reset failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
