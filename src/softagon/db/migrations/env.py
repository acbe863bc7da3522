"""Alembic environment for the Softagon schema.

The target URL comes from the Alembic config when softagon.db.schema builds
it, or from the Softagon settings when alembic is run from the command line
with the bundled alembic.ini. Offline mode renders SQL without connecting.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from softagon.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

CONFIGURE_OPTIONS = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def database_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url

    from softagon.db import get_database_url

    return get_database_url()


def run_offline() -> None:
    context.configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    # Migrations run once per invocation; no pool to keep around
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **CONFIGURE_OPTIONS)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
