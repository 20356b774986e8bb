"""Data models for allnews."""

from allnews.models.article import (
    Article,
    ArticleModel,
    ResourceStat,
    as_utc,
)
from allnews.models.base import Base
from allnews.models.source import SourceConfig, format_duration, parse_duration

__all__ = [
    "Base",
    "Article",
    "ArticleModel",
    "ResourceStat",
    "SourceConfig",
    "as_utc",
    "format_duration",
    "parse_duration",
]
