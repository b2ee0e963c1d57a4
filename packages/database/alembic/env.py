from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError

from database.db_config import get_connect_args, get_database_url
from database.models import Base

config = context.config
logger = logging.getLogger("alembic.env")

if config.config_file_name is not None:
    # Keep the host application's loggers when migrations run in-process.
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def _ledger_url() -> URL:
    """DATABASE_URL (or the POSTGRES_* parts) win over the ini placeholder."""
    try:
        raw = get_database_url()
    except ValueError:
        raw = config.get_main_option("sqlalchemy.url")
        logger.info("No ledger database configured in the environment, using alembic.ini url")

    url = make_url(raw)
    if url.get_backend_name() != "postgresql":
        raise RuntimeError(
            f"Ledger migrations target PostgreSQL, got '{url.get_backend_name()}'. "
            "SQLite databases are created from the models at startup."
        )
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_ledger_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _ledger_url()
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url.render_as_string(hide_password=False)

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=get_connect_args(),
    )

    try:
        with connectable.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                compare_type=True,
            )
            with context.begin_transaction():
                context.run_migrations()
    except SQLAlchemyError:
        logger.exception("Ledger migration failed against %s", url.render_as_string())
        raise
    finally:
        connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
