from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  imports trigger Base.metadata registration
    ExternalConnection,
    FieldMapping,
    MappedRecord,
    MappingValidation,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Tables owned by this service; anything else in the mirror database is left alone.
_MANAGED_TABLES = frozenset(target_metadata.tables.keys())


def _migration_url() -> str:
    """
    URL precedence: `-x db_url=...`, ALEMBIC_DATABASE_URL, then the app's own
    DATABASE_URL / CLOUD_DATABASE_URL / LOCAL_DATABASE_URL resolution.
    """

    load_env_files()

    override = context.get_x_argument(as_dictionary=True).get("db_url") or os.getenv("ALEMBIC_DATABASE_URL")
    url = normalize_postgres_url(override) if override else resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError("Migrations target the PostgreSQL mirror database only.")
    return url


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    if type_ == "table":
        return name in _MANAGED_TABLES
    return True


def _configure_kwargs() -> dict:
    return {
        "target_metadata": target_metadata,
        "include_object": _include_object,
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _migration_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
