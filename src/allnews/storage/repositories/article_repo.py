"""
Article repository for database operations.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import asc, desc, func, text
from sqlalchemy.orm import Session

from allnews.models import Article, ArticleModel, ResourceStat, as_utc
from allnews.storage.dialects import BaseDialect, get_dialect
from allnews.storage.query import ArticleQuery

# Keeps a multi-row insert below SQLite's bound-parameter limit
INSERT_CHUNK_SIZE = 500


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


class ArticleRepository:
    """Repository for article persistence and queries."""

    def __init__(self, session: Session, dialect: Optional[BaseDialect] = None) -> None:
        """Initialize repository with a database session.

        Args:
            session: SQLAlchemy Session instance
            dialect: Dialect used to build conflict-ignoring inserts
                     (default: derived from the session's bind)
        """
        self.session = session
        self.dialect = dialect or get_dialect(session.get_bind().dialect.name)

    def insert_ignore_duplicates(self, articles: Iterable[Article]) -> int:
        """Insert articles, skipping any whose URL is already stored.

        The first occurrence of a URL within ``articles`` wins; rows already
        in the table are never modified.

        Args:
            articles: Articles to insert

        Returns:
            Number of rows inserted, as reported by the driver
        """
        rows = []
        seen_urls = set()
        for article in articles:
            if article.url in seen_urls:
                continue
            seen_urls.add(article.url)
            rows.append(article.to_row())

        inserted = 0
        table = ArticleModel.__table__
        for start in range(0, len(rows), INSERT_CHUNK_SIZE):
            statement = self.dialect.insert_ignore_conflicts(
                table, rows[start:start + INSERT_CHUNK_SIZE], key="url"
            )
            result = self.session.execute(statement)
            if result.rowcount and result.rowcount > 0:
                inserted += result.rowcount

        self.session.flush()
        return inserted

    def search(self, params: ArticleQuery) -> list[ArticleModel]:
        """Search articles.

        Args:
            params: Search parameters

        Returns:
            Matching rows, newest first
        """
        q = self.session.query(ArticleModel).filter(
            ArticleModel.published >= params.date_start,
            ArticleModel.published <= params.date_end,
        )

        if params.filter:
            q = q.filter(ArticleModel.title.icontains(params.filter, autoescape=True))

        if params.resource_names is not None:
            q = q.filter(ArticleModel.resource_name.in_(params.resource_names))

        return (
            q.order_by(desc(ArticleModel.published), desc(ArticleModel.id))
            .limit(params.limit)
            .offset(params.offset)
            .all()
        )

    def get_stats(self) -> list[ResourceStat]:
        """Get article count and publication range per resource.

        Returns:
            One ResourceStat per resource, ordered by resource name
        """
        rows = (
            self.session.query(
                ArticleModel.resource_name,
                func.count(ArticleModel.id),
                func.min(ArticleModel.published),
                func.max(ArticleModel.published),
            )
            .group_by(ArticleModel.resource_name)
            .order_by(asc(ArticleModel.resource_name))
            .all()
        )

        return [
            ResourceStat(
                resource=resource,
                count=count,
                first_published=_utc_or_none(first),
                last_published=_utc_or_none(last),
            )
            for resource, count, first, last in rows
        ]

    def ping(self) -> None:
        """Run a trivial statement to check the connection."""
        self.session.execute(text("SELECT 1"))
