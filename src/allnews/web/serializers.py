"""
Serializer functions for converting articles and stats to dictionaries.
"""

from datetime import datetime
from typing import Any, Optional

from allnews.models import Article, ResourceStat


def serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO format string.

    Args:
        dt: Datetime object or None

    Returns:
        ISO format string or None
    """
    return dt.isoformat() if dt else None


def article_to_dict(article: Article) -> dict:
    """Convert an Article to its API representation.

    The raw feed item is stored but not exposed.
    """
    return {
        "resource": article.resource,
        "url": article.url,
        "title": article.title,
        "description": article.description,
        "published": serialize_datetime(article.published),
    }


def stat_to_dict(stat: ResourceStat) -> dict:
    """Convert a ResourceStat to dictionary."""
    return {
        "resource": stat.resource,
        "count": stat.count,
        "first_published": serialize_datetime(stat.first_published),
        "last_published": serialize_datetime(stat.last_published),
    }


def api_response(
    success: bool = True,
    data: Any = None,
    message: str = None,
    error: str = None,
    status: int = 200
) -> tuple:
    """Standard API response format.

    Args:
        success: Whether the request was successful
        data: Response data
        message: Success message
        error: Error message
        status: HTTP status code

    Returns:
        Flask response with JSON data
    """
    from flask import jsonify

    response_data = {
        "success": success,
        "data": data,
        "message": message,
        "error": error,
    }
    return jsonify(response_data), status
