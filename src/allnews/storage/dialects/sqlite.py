"""SQLite dialect implementation."""

from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import Engine, Table, event
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql.dml import Insert

from allnews.storage.dialects.base import BaseDialect

if TYPE_CHECKING:
    from allnews.config import DatabaseConfig

MEMORY_PATH = ":memory:"


class SQLiteDialect(BaseDialect):
    """SQLite database dialect.

    SQLite is the default database. It requires no external server and is
    suitable for single-user deployments and development.

    Features:
    - WAL mode so readers are not blocked by collector writes
    - Lock timeout so concurrent collector threads wait instead of failing
    - StaticPool for in-memory databases, QueuePool otherwise
    """

    @property
    def name(self) -> str:
        """Get dialect name."""
        return "sqlite"

    def build_url(self, config: "DatabaseConfig") -> str:
        """Build SQLite database URL.

        Note:
            - url: "sqlite:///data/allnews.db" -> unchanged
            - path: "data/allnews.db" -> "sqlite:///data/allnews.db"
            - path: ":memory:" -> "sqlite://"
        """
        if config.url:
            return config.url

        db_path = config.path

        if db_path.startswith("sqlite://"):
            return db_path

        if db_path == MEMORY_PATH:
            return "sqlite://"

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{db_path}"

    def get_engine_kwargs(self, config: "DatabaseConfig") -> dict:
        """Get SQLite-specific engine kwargs.

        Note:
            An in-memory database exists per connection, so it must share a
            single connection across threads (StaticPool).
        """
        connect_args = {
            "check_same_thread": False,
            "timeout": 30,  # seconds to wait for locks
        }

        if self.build_url(config) in ("sqlite://", "sqlite:///:memory:"):
            return {
                "echo": config.echo,
                "connect_args": connect_args,
                "poolclass": StaticPool,
            }

        return {
            "echo": config.echo,
            "connect_args": connect_args,
            "poolclass": QueuePool,
            "pool_size": config.pool_size,
            "max_overflow": config.max_overflow,
        }

    def setup_engine_events(self, engine: Engine) -> None:
        """Set up SQLite PRAGMA statements."""

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    def insert_ignore_conflicts(self, table: Table, rows: list[dict], key: str) -> Insert:
        """INSERT ... ON CONFLICT (key) DO NOTHING."""
        return sqlite_insert(table).values(rows).on_conflict_do_nothing(index_elements=[key])

    def get_migration_kwargs(self) -> dict:
        """SQLite needs batch mode for ALTER TABLE."""
        return {"render_as_batch": True}

    def validate_config(self, config: "DatabaseConfig") -> list[str]:
        """Validate SQLite configuration."""
        errors = []

        if config.path != MEMORY_PATH and not config.url:
            db_path = Path(config.path)
            if db_path.exists() and not db_path.is_file():
                errors.append(f"Database path exists but is not a file: {config.path}")

        return errors
