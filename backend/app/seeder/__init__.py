"""
Large-scale synthetic data seeder.

Generates users with activity tiers and recency-weighted transactions owned by
those users, and streams both into the database in fixed-size batches.

Usage:
    from app.database import SessionLocal
    from app.seeder import GenerationConfig, seed_database

    summary = seed_database(GenerationConfig(user_count=100, transaction_count=1000), SessionLocal)

Entry points:
    - app.main: startup hook when DATA_SEEDER_ENABLED is set
    - tasks.seed_tasks.run_data_seeder: Celery task with Redis progress events
    - postgres_migration/seed_large_dataset.py: operator CLI
"""
from app.seeder.config import DataSeederSettings, GenerationConfig
from app.seeder.errors import (
    ConfigurationError,
    GenerationError,
    PersistenceError,
    SeederError,
    SeedingCancelled,
)
from app.seeder.pipeline import SeedingPipeline, SeedingSummary, seed_database

__all__ = [
    "ConfigurationError",
    "DataSeederSettings",
    "GenerationConfig",
    "GenerationError",
    "PersistenceError",
    "SeederError",
    "SeedingCancelled",
    "SeedingPipeline",
    "SeedingSummary",
    "seed_database",
]
