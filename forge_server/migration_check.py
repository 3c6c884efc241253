"""Startup step that brings the Forge schema to the latest Alembic revision."""
import sys
import subprocess
from pathlib import Path

from forge_server.config import settings
from forge_server.logging_config import get_logger

logger = get_logger(__name__)

MIGRATION_TIMEOUT_S = 60


def get_alembic_dir() -> Path:
    """Repository root, where alembic.ini lives."""
    return Path(__file__).parent.parent


def _migration_failed(message: str) -> None:
    logger.error(message)
    if settings.require_migrations:
        sys.exit(1)


def ensure_migrations() -> None:
    """
    Run ``alembic upgrade head`` against ``DATABASE_URL``.

    Runs in a subprocess since alembic/env.py starts its own event loop.
    Skipped when AUTO_MIGRATE is off, and for in-memory SQLite, which a
    second process cannot see. Any failure stops startup unless
    REQUIRE_MIGRATIONS=false.
    """
    if not settings.auto_migrate:
        logger.info("AUTO_MIGRATE=false, skipping migrations")
        return
    if settings.is_sqlite and ":memory:" in settings.database_url:
        logger.warning("In-memory SQLite database, skipping migrations")
        return

    backend = "SQLite" if settings.is_sqlite else "PostgreSQL"
    logger.info(f"Migrating {backend} schema to head")

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=get_alembic_dir(),
            capture_output=True,
            text=True,
            timeout=MIGRATION_TIMEOUT_S,
        )
    except subprocess.TimeoutExpired:
        _migration_failed(f"Migration timed out after {MIGRATION_TIMEOUT_S}s")
        return
    except FileNotFoundError:
        _migration_failed("alembic executable not found")
        return

    if result.returncode != 0:
        _migration_failed(f"Migration failed: {result.stderr.strip()}")
        return

    # Alembic logs applied revisions to stderr.
    applied = [line for line in result.stderr.splitlines() if "Running upgrade" in line]
    for line in applied:
        logger.info(f"  {line.strip()}")
    logger.info(f"Migrations complete, {len(applied)} revision(s) applied")
