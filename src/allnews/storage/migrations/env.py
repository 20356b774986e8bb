"""Alembic migration environment for allnews.

Works with:
- the pydantic-settings configuration (database section)
- the SQLAlchemy models in allnews.models
- the dialect registry (SQLite, PostgreSQL)

DatabaseManager.migrate() hands over an open connection through
``config.attributes["connection"]``; the ``alembic`` command line builds
its own engine from the application config instead.
"""

from sqlalchemy import engine_from_config

from alembic import context

from allnews.config import get_config
from allnews.models import Base
from allnews.storage.dialects import get_dialect

config = context.config

db_config = get_config().database
dialect = get_dialect(db_config.resolved_type)

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", dialect.build_url(db_config).replace("%", "%%"))

target_metadata = Base.metadata

migration_kwargs = dialect.get_migration_kwargs()


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_kwargs,
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **migration_kwargs,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with_connection(connection)
        return

    configuration = config.get_section(config.config_ini_section, {})
    engine_kwargs = dialect.get_engine_kwargs(db_config)
    engine_kwargs.pop("echo", None)

    connectable = engine_from_config(configuration, prefix="sqlalchemy.", **engine_kwargs)
    dialect.setup_engine_events(connectable)

    with connectable.connect() as connection:
        _run_with_connection(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
