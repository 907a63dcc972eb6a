from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
import logging
import os

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

from app.database import engine, Base, SessionLocal
from app.seeder import DataSeederSettings, GenerationConfig, SeedingSummary, seed_database

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


def run_startup_seeder(settings: Optional[DataSeederSettings] = None) -> Optional[SeedingSummary]:
    """
    Seed the database once during startup when DATA_SEEDER_ENABLED is set.

    Runs synchronously, so the API only starts serving after the dataset is in
    place. A failed seed aborts startup.
    """
    settings = settings or DataSeederSettings()
    if not settings.enabled:
        logger.info("[DATA_SEEDER] Skipped: DATA_SEEDER_ENABLED is disabled")
        return None

    # Guarded dev helper; production schemas come from migrations.
    if _env_bool("AUTO_CREATE_TABLES", default=False):
        logger.warning("AUTO_CREATE_TABLES is enabled; creating tables via SQLAlchemy metadata.")
        Base.metadata.create_all(bind=engine)

    config = GenerationConfig.from_settings(settings)
    return seed_database(config, SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.seed_summary = run_startup_seeder()
    yield


app = FastAPI(
    title="Analytics Data Seeder",
    description="Seeds users and transactions for analytics dashboards",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if _env_bool("API_DOCS_ENABLED", default=False) else None,
    redoc_url="/redoc" if _env_bool("API_DOCS_ENABLED", default=False) else None,
    openapi_url="/openapi.json" if _env_bool("API_DOCS_ENABLED", default=False) else None,
)


@app.get("/")
def root():
    payload = {"message": "Analytics Data Seeder"}
    summary = getattr(app.state, "seed_summary", None)
    if summary is not None:
        payload["seed_summary"] = summary.as_dict()
    if _env_bool("API_DOCS_ENABLED", default=False):
        payload["docs"] = "/docs"
    return payload


@app.get("/health")
def health():
    return {"status": "healthy"}
