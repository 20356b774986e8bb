"""
RSS/Atom feed fetcher.

Downloads a feed under an overall deadline with httpx, parses it with
feedparser and extracts normalized articles.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import feedparser
import httpx

from allnews.config import get_config
from allnews.exceptions import FetchError, FetchTimeout, SerializationError
from allnews.logger import get_logger
from allnews.models.article import Article

logger = get_logger(__name__)


@dataclass
class FeedItem:
    """One item of a parsed feed."""

    link: str = ""
    title: str = ""
    description: str = ""
    published_at: Optional[datetime] = None
    raw_fields: dict = field(default_factory=dict)


@dataclass
class ParsedFeed:
    """Result of fetching and parsing a feed document."""

    url: str
    items: list[FeedItem] = field(default_factory=list)
    title: str = ""
    link: str = ""
    fetch_time_seconds: float = 0.0


def _struct_to_datetime(value: Any) -> Optional[datetime]:
    """Convert a feedparser UTC ``time.struct_time`` to an aware datetime."""
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _to_item(entry: dict) -> FeedItem:
    """Convert a raw feedparser entry to a FeedItem.

    The publish time falls back to the update time, as Atom feeds often
    only carry ``<updated>``.
    """
    published_at = _struct_to_datetime(entry.get("published_parsed")) or _struct_to_datetime(
        entry.get("updated_parsed")
    )
    return FeedItem(
        link=(entry.get("link") or "").strip(),
        title=entry.get("title") or "",
        description=entry.get("description") or entry.get("summary") or "",
        published_at=published_at,
        raw_fields=dict(entry),
    )


def parse_feed(content: Union[bytes, str], url: str = "") -> ParsedFeed:
    """Parse a feed document.

    Args:
        content: Raw feed document
        url: Feed URL, for error reporting

    Returns:
        ParsedFeed with all entries

    Raises:
        FetchError: If the document is not a recognizable feed
    """
    parsed = feedparser.parse(content)
    entries = parsed.get("entries", [])

    if parsed.get("bozo") and not entries and not parsed.get("feed"):
        raise FetchError(url, "Could not parse feed", parsed.get("bozo_exception"))

    feed_info = parsed.get("feed", {})
    return ParsedFeed(
        url=url,
        items=[_to_item(entry) for entry in entries],
        title=feed_info.get("title") or "",
        link=feed_info.get("link") or "",
    )


def extract(parsed_feed: ParsedFeed, resource: str) -> list[Article]:
    """Extract articles from a parsed feed.

    Items without a publish time are skipped. Missing title, description or
    link become empty strings.

    Args:
        parsed_feed: Parsed feed
        resource: Source name the articles belong to

    Returns:
        List of Article instances

    Raises:
        SerializationError: If an item cannot be serialized to JSON
    """
    articles = []
    for item in parsed_feed.items:
        if item.published_at is None:
            continue

        try:
            raw_item = json.dumps(item.raw_fields, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Could not serialize item {item.link!r} of {resource}", e
            ) from e

        articles.append(
            Article(
                resource=resource,
                url=item.link,
                title=item.title,
                description=item.description,
                published=item.published_at,
                raw_item=raw_item,
            )
        )

    return articles


class FeedFetcher:
    """RSS/Atom feed fetcher bounded by a per-call deadline."""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        follow_redirects: Optional[bool] = None,
        max_redirects: Optional[int] = None,
        max_content_length: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize feed fetcher.

        Args:
            user_agent: User-Agent header for HTTP requests
            follow_redirects: Whether to follow redirects
            max_redirects: Maximum number of redirects
            max_content_length: Maximum feed size in bytes
            transport: Optional httpx transport (used by tests)
        """
        config = get_config().fetcher

        self.user_agent = user_agent or config.user_agent
        self.follow_redirects = (
            config.follow_redirects if follow_redirects is None else follow_redirects
        )
        self.max_redirects = config.max_redirects if max_redirects is None else max_redirects
        self.max_content_length = max_content_length or config.max_content_length
        self.transport = transport

    def fetch(self, url: str, timeout: Union[timedelta, float]) -> ParsedFeed:
        """Fetch and parse a feed.

        Args:
            url: Feed URL
            timeout: Deadline for the whole download and parse

        Returns:
            ParsedFeed

        Raises:
            FetchTimeout: If the deadline passes before the feed is parsed
            FetchError: On any other transport, HTTP or parse failure
        """
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        start_time = time.monotonic()
        deadline = start_time + seconds

        try:
            content = self._download(url, seconds, deadline)
        except httpx.TimeoutException as e:
            raise FetchTimeout(url, f"Timed out after {seconds:g}s", e) from e
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}", e) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, "Request error", e) from e

        parsed = parse_feed(content, url)

        if time.monotonic() > deadline:
            raise FetchTimeout(url, f"Timed out after {seconds:g}s")

        parsed.fetch_time_seconds = time.monotonic() - start_time
        logger.debug(
            f"Fetched {len(parsed.items)} items from {url} in {parsed.fetch_time_seconds:.2f}s"
        )
        return parsed

    def _download(self, url: str, seconds: float, deadline: float) -> bytes:
        """Download the feed body, checking the deadline between chunks.

        Raises:
            FetchTimeout: If the deadline passes mid-download
            FetchError: If the body exceeds the size limit
            httpx.HTTPError: On transport or HTTP status errors
        """
        headers = {"User-Agent": self.user_agent}

        with httpx.Client(
            timeout=seconds,
            follow_redirects=self.follow_redirects,
            max_redirects=self.max_redirects,
            transport=self.transport,
        ) as client:
            with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()

                chunks = []
                size = 0
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise FetchTimeout(url, f"Timed out after {seconds:g}s")
                    size += len(chunk)
                    if size > self.max_content_length:
                        raise FetchError(
                            url, f"Feed exceeds {self.max_content_length} bytes"
                        )
                    chunks.append(chunk)

                return b"".join(chunks)

