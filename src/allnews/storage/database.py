"""
Database connection and session management.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from allnews.config import DatabaseConfig, get_config
from allnews.logger import get_logger
from allnews.models import Base
from allnews.storage.dialects import BaseDialect, get_dialect

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class DatabaseManager:
    """Database manager for context-managed database operations."""

    def __init__(self, db_path: Optional[str] = None, db_config: Optional[DatabaseConfig] = None):
        """Initialize database manager.

        Args:
            db_path: Optional SQLite database path (":memory:" for in-memory)
            db_config: Optional custom database configuration

        Note:
            If neither db_path nor db_config is provided, uses the global config.
        """
        if db_config is None:
            if db_path is not None:
                db_config = DatabaseConfig(type="sqlite", path=db_path)
            else:
                db_config = get_config().database

        self.db_config = db_config
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def dialect(self) -> BaseDialect:
        """Dialect matching the configured backend."""
        return get_dialect(self.db_config.resolved_type)

    @property
    def url(self) -> str:
        """SQLAlchemy URL of the configured database."""
        return self.dialect.build_url(self.db_config)

    @property
    def engine(self) -> Engine:
        """Get the database engine."""
        if self._engine is None:
            dialect = self.dialect
            for problem in dialect.validate_config(self.db_config):
                logger.warning(f"Database configuration: {problem}")

            self._engine = create_engine(self.url, **dialect.get_engine_kwargs(self.db_config))
            dialect.setup_engine_events(self._engine)

        return self._engine

    def init_db(self, drop_all: bool = False) -> None:
        """Create database tables directly from the models.

        Args:
            drop_all: If True, drop existing tables first

        Note:
            Intended for tests and development; use migrate() otherwise.
        """
        if drop_all:
            logger.warning("Dropping all tables - data will be lost!")
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)

    def migrate(self, revision: str = "head") -> None:
        """Upgrade the schema with Alembic migrations.

        Args:
            revision: Target revision
        """
        from alembic import command
        from alembic.config import Config as AlembicConfig

        alembic_cfg = AlembicConfig()
        alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
        alembic_cfg.set_main_option("sqlalchemy.url", self.url.replace("%", "%%"))

        with self.engine.begin() as connection:
            alembic_cfg.attributes["connection"] = connection
            command.upgrade(alembic_cfg, revision)

        logger.info(f"Database migrated to {revision}")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a database session.

        Commits on success and rolls back on any exception.

        Yields:
            SQLAlchemy Session instance
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
                bind=self.engine,
            )
        session = self._session_factory()

        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
