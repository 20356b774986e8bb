"""Storage layer modules for allnews."""

from allnews.storage.database import DatabaseManager
from allnews.storage.query import ArticleQuery
from allnews.storage.sink import ArticleSink, DryRunSink
from allnews.storage.store import ArticleStore

__all__ = [
    "DatabaseManager",
    "ArticleQuery",
    "ArticleSink",
    "DryRunSink",
    "ArticleStore",
]
