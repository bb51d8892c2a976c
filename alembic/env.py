"""
Alembic environment.
Reads the same DatabaseConfig as the application and swaps the async
driver for its synchronous counterpart.
"""

import os
import sys
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from dotenv import load_dotenv

# Make the project importable when alembic runs from the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from bloodlink.db.models import DbBaseModel
from common.config import DatabaseConfig, get_config, initialize_config
from common.api_error import ConfigurationError

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    print(f"FATAL: Configuration error:\n{e}", file=sys.stderr)
    sys.exit(1)

config = context.config
app_config = get_config()

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = DbBaseModel.metadata

_SYNC_DRIVERS = {
    "asyncpg": "postgresql+psycopg2",
    "psycopg": "postgresql+psycopg",
    "aiosqlite": "sqlite",
}


def _database() -> DatabaseConfig:
    if app_config.database is None:
        raise RuntimeError("Database configuration not found in environment (DB_DRIVER)")
    return app_config.database


def get_sync_url() -> str:
    db_config = _database()
    async_url = db_config.get_connection_url(include_password=True)
    _, rest = async_url.split("://", 1)
    return f"{_SYNC_DRIVERS[db_config.driver.value]}://{rest}"


def get_connect_args() -> dict:
    """libpq-style SSL settings matching what the app uses at runtime."""
    db_config = _database()
    connect_args: dict = {}
    if db_config.ssl_mode is None or db_config.driver.is_sqlite:
        return connect_args

    connect_args["sslmode"] = db_config.ssl_mode.value
    if db_config.ssl_ca_path:
        connect_args["sslrootcert"] = str(db_config.ssl_ca_path)
    if db_config.ssl_cert_path:
        connect_args["sslcert"] = str(db_config.ssl_cert_path)
    if db_config.ssl_key_path:
        connect_args["sslkey"] = str(db_config.ssl_key_path)
    return connect_args


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_database().driver.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_sync_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=get_connect_args(),
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=_database().driver.is_sqlite,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
