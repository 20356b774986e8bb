"""
Tag matching for feed sources.

A tag query maps a category to the set of values requested for it. It
matches a source when, for every category in the query, all requested values
are among the source's values for that category. Categories not mentioned in
the query are unconstrained.
"""

from collections.abc import Iterable, Mapping
from typing import Union

from allnews.exceptions import MalformedTagToken
from allnews.models.source import SourceConfig

TAG_SEPARATOR = ":"

TagQuery = dict[str, set[str]]


def parse_tag_query(tokens: Iterable[str]) -> TagQuery:
    """Parse ``category:value`` tokens into a tag query.

    Tokens sharing a category accumulate into one value set.

    Args:
        tokens: Raw tokens, e.g. ``["topic:sports", "country:UK"]``

    Returns:
        Mapping of category to requested values

    Raises:
        MalformedTagToken: If any token does not split into exactly two parts
    """
    query: TagQuery = {}
    for token in tokens:
        parts = token.split(TAG_SEPARATOR)
        if len(parts) != 2:
            raise MalformedTagToken(token)
        category, value = parts
        query.setdefault(category, set()).add(value)
    return query


def tags_match(query: Mapping[str, Iterable[str]], tags: Mapping[str, Iterable[str]]) -> bool:
    """Check whether ``tags`` satisfies ``query`` (per-category subset)."""
    for category, requested in query.items():
        if category not in tags:
            return False
        if not set(requested) <= set(tags[category]):
            return False
    return True


def resolve(
    query: Union[Mapping[str, Iterable[str]], Iterable[str]],
    sources: Iterable[SourceConfig],
) -> set[str]:
    """Get the names of sources whose tags satisfy a query.

    Args:
        query: A parsed tag query, or raw ``category:value`` tokens
        sources: Sources to evaluate

    Returns:
        Set of matching source names; every name when the query is empty

    Raises:
        MalformedTagToken: If raw tokens are given and one is malformed
    """
    if isinstance(query, str):
        query = [query]
    if not isinstance(query, Mapping):
        query = parse_tag_query(query)

    return {source.name for source in sources if tags_match(query, source.tags)}


def aggregate_tags(sources: Iterable[SourceConfig]) -> dict[str, set[str]]:
    """Collect every distinct tag value per category across sources."""
    result: dict[str, set[str]] = {}
    for source in sources:
        for category, values in source.tags.items():
            result.setdefault(category, set()).update(values)
    return result


def sorted_tags(tags: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    """Deterministic rendering of a tag mapping: sorted categories and values."""
    return {category: sorted(tags[category]) for category in sorted(tags)}
