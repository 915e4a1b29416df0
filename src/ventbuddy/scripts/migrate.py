# src/ventbuddy/scripts/migrate.py
"""Apply Alembic migrations up to head."""

from __future__ import annotations

import logging
import os

from alembic import command
from alembic.config import Config

from ventbuddy.core.settings import settings

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def build_config() -> Config:
    """Return an Alembic config bound to the configured database."""
    cfg = Config(os.path.join(_MIGRATIONS_DIR, "alembic.ini"))
    cfg.set_main_option("script_location", _MIGRATIONS_DIR)
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    return cfg


def run_upgrade_head() -> None:
    logger.info("Upgrading database schema to head")
    command.upgrade(build_config(), "head")


if __name__ == "__main__":
    run_upgrade_head()
