"""Schema management: Alembic migrations and metadata-based bootstrap.

Production databases are built and evolved with Alembic (run_migrations).
create_schema()/drop_schema() build the same tables straight from the ORM
metadata and are meant for development databases and tests.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config

from softagon.db import get_database_url
from softagon.db.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from softagon.core.config import DatabaseSettings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def migration_config(database: DatabaseSettings | None = None) -> Config:
    """Build an Alembic Config pointing at the packaged migrations.

    Args:
        database: Connection settings. Loaded from the environment if None.

    Returns:
        Alembic Config with script_location and sqlalchemy.url set.
    """
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats % specially
    config.set_main_option("sqlalchemy.url", get_database_url(database).replace("%", "%%"))
    return config


def run_migrations(revision: str = "head", database: DatabaseSettings | None = None) -> None:
    """Upgrade the database to the given revision."""
    logger.info("Running migrations up to %s", revision)
    command.upgrade(migration_config(database), revision)


def downgrade_migrations(revision: str, database: DatabaseSettings | None = None) -> None:
    """Downgrade the database to the given revision ("base" drops everything)."""
    logger.info("Downgrading migrations to %s", revision)
    command.downgrade(migration_config(database), revision)


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table from the ORM metadata (skips existing ones)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema created (%d tables)", len(Base.metadata.tables))


async def drop_schema(engine: AsyncEngine) -> None:
    """Drop every table known to the ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Schema dropped")
