"""Repository pattern implementations for data access."""

from allnews.storage.repositories.article_repo import ArticleRepository

__all__ = [
    "ArticleRepository",
]
