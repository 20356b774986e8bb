"""
Database-backed article store.

Deduplication relies on the unique constraint on ``articles.url``: every
batch is inserted with ON CONFLICT DO NOTHING, so concurrent writers can
never store the same URL twice and an existing row is never overwritten.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from allnews.exceptions import StorageError
from allnews.logger import get_logger
from allnews.models import Article, ResourceStat
from allnews.storage.database import DatabaseManager
from allnews.storage.query import ArticleQuery
from allnews.storage.repositories.article_repo import ArticleRepository
from allnews.storage.sink import ArticleSink

logger = get_logger(__name__)


class ArticleStore(ArticleSink):
    """Persistent article sink with search and statistics."""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        """Initialize article store.

        Args:
            db_manager: Database manager (default: one built from global config)
        """
        self.db_manager = db_manager or DatabaseManager()

    def _repository(self, session) -> ArticleRepository:
        return ArticleRepository(session, self.db_manager.dialect)

    def save(self, articles: list[Article]) -> None:
        """Insert articles whose URL is not stored yet, in one transaction.

        Raises:
            StorageError: If the batch could not be written; nothing is saved
        """
        if not articles:
            return

        try:
            with self.db_manager.session() as session:
                inserted = self._repository(session).insert_ignore_duplicates(articles)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not save {len(articles)} articles", e) from e

        logger.debug(f"Saved {inserted} new of {len(articles)} articles")

    def query(self, params: Optional[ArticleQuery] = None) -> list[Article]:
        """Search stored articles.

        Args:
            params: Search parameters (default: ArticleQuery.build())

        Returns:
            Articles ordered by publication time, newest first

        Raises:
            StorageError: If the query failed
        """
        params = params or ArticleQuery.build()

        try:
            with self.db_manager.session() as session:
                rows = self._repository(session).search(params)
                return [Article.from_model(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError("Could not query articles", e) from e

    def stats(self) -> list[ResourceStat]:
        """Get per-resource article statistics.

        Raises:
            StorageError: If the query failed
        """
        try:
            with self.db_manager.session() as session:
                return self._repository(session).get_stats()
        except SQLAlchemyError as e:
            raise StorageError("Could not compute article statistics", e) from e

    def ping(self) -> None:
        """Check that the database is reachable.

        Raises:
            StorageError: If the database cannot be reached
        """
        try:
            with self.db_manager.session() as session:
                self._repository(session).ping()
        except SQLAlchemyError as e:
            raise StorageError("Database is unreachable", e) from e

    def close(self) -> None:
        """Release database connections."""
        self.db_manager.close()
