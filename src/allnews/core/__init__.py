"""Core collection modules for allnews."""

from allnews.core.fetcher import FeedFetcher, FeedItem, ParsedFeed, extract, parse_feed
from allnews.core.scheduler import (
    CollectionScheduler,
    CollectionStats,
    CycleResult,
    group_sources,
)
from allnews.core.tags import aggregate_tags, parse_tag_query, resolve, sorted_tags, tags_match

__all__ = [
    # Fetcher
    "FeedFetcher",
    "FeedItem",
    "ParsedFeed",
    "extract",
    "parse_feed",
    # Scheduler
    "CollectionScheduler",
    "CollectionStats",
    "CycleResult",
    "group_sources",
    # Tags
    "aggregate_tags",
    "parse_tag_query",
    "resolve",
    "sorted_tags",
    "tags_match",
]
