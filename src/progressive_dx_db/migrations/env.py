"""Alembic environment for the prediction-session schema.

Migrations run synchronously over psycopg2 (``get_sync_url``), while the
application itself talks to the same database through asyncpg.  The
revision table is named ``progressive_dx_alembic_version`` so the schema
can share a database with other Alembic-managed applications.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from progressive_dx_db.config import get_sync_url
from progressive_dx_db.models.base import Base

# Registers prediction_sessions on Base.metadata
import progressive_dx_db.models.session  # noqa: F401

VERSION_TABLE = "progressive_dx_alembic_version"

config = context.config
config.set_main_option("sqlalchemy.url", get_sync_url())

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    # Ignore tables this package does not own when autogenerating
    if type_ == "table":
        return name in Base.metadata.tables
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        version_table=VERSION_TABLE,
        include_object=_include_object,
        compare_type=True,
        **kwargs,
    )


def run_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
