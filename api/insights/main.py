import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .config import ADMIN_TOKEN
from .database import SessionLocal
from .routes import include_modular_routers
from .services.aggregator import default_aggregator_registry
from .services.renderers import default_visualization_registry

logger = logging.getLogger(__name__)

app = FastAPI(title="Questionnaire Insights API")

# Registries are filled once here and read-only for the lifetime of the app.
app.state.aggregator_registry = default_aggregator_registry().freeze()
app.state.visualization_registry = default_visualization_registry().freeze()

include_modular_routers(app)

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def run_migrations() -> None:
    env_dir = os.getenv("MIGRATIONS_DIR", "").strip()
    local_dir = Path(__file__).resolve().parents[1] / "migrations"
    migrations_dir = Path(env_dir) if env_dir else local_dir

    if not migrations_dir.is_dir():
        raise FileNotFoundError(
            f"Migrations directory not found. Checked: MIGRATIONS_DIR={env_dir or '<unset>'}, {local_dir}"
        )

    files = sorted(f.name for f in migrations_dir.iterdir() if f.is_file() and f.suffix == ".sql")
    with SessionLocal() as db:
        for fname in files:
            db.execute(text((migrations_dir / fname).read_text(encoding="utf-8")))
        db.commit()
    logger.info("[STARTUP] applied %s migration file(s) from %s", len(files), migrations_dir)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
            return
        except OperationalError as exc:
            last_err = exc
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    run_migrations()
    if not ADMIN_TOKEN:
        logger.warning("[STARTUP] ADMIN_TOKEN is not set; operator access is disabled")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
