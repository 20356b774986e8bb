"""Unit tests for tag matching."""

import pytest

from allnews.core.tags import aggregate_tags, parse_tag_query, resolve, sorted_tags, tags_match
from allnews.exceptions import MalformedTagToken


class TestParseTagQuery:
    """Tests for parse_tag_query."""

    def test_parse_tokens(self):
        """Tokens sharing a category accumulate."""
        query = parse_tag_query(["topic:sports", "topic:news", "country:UK"])

        assert query == {"topic": {"sports", "news"}, "country": {"UK"}}

    def test_empty(self):
        """No tokens parse to the empty query."""
        assert parse_tag_query([]) == {}

    @pytest.mark.parametrize("token", ["sports", "a:b:c", ""])
    def test_malformed_token(self, token):
        """Tokens must split into exactly two parts."""
        with pytest.raises(MalformedTagToken) as exc_info:
            parse_tag_query(["topic:news", token])

        assert exc_info.value.token == token
        assert "tagCategory:tagValue" in str(exc_info.value)


class TestTagsMatch:
    """Tests for tags_match."""

    def test_subset_matches(self):
        assert tags_match({"topic": {"sports"}}, {"topic": ["sports", "news"]})

    def test_missing_value(self):
        assert not tags_match({"topic": {"sports", "tech"}}, {"topic": ["sports", "news"]})

    def test_missing_category(self):
        """A query category the source lacks never matches."""
        assert not tags_match({"country": {"UK"}}, {"topic": ["news"]})

    def test_unconstrained_categories(self):
        """Categories absent from the query are ignored."""
        assert tags_match({}, {"topic": ["news"], "country": ["UK"]})


class TestResolve:
    """Tests for resolve."""

    def test_single_category(self, sources):
        assert resolve({"topic": {"sports"}}, sources) == {"R1", "R3"}

    def test_several_categories(self, sources):
        assert resolve({"topic": {"sports"}, "country": {"US"}}, sources) == {"R3"}

    def test_several_values(self, sources):
        assert resolve({"topic": {"sports", "news"}}, sources) == {"R1"}

    def test_raw_tokens(self, sources):
        """Raw tokens are parsed before matching."""
        assert resolve(["country:UK"], sources) == {"R1", "R3"}

    def test_single_token_string(self, sources):
        assert resolve("topic:news", sources) == {"R1", "R2"}

    def test_empty_query_matches_all(self, sources):
        assert resolve([], sources) == {"R1", "R2", "R3"}

    def test_no_match(self, sources):
        assert resolve({"topic": {"weather"}}, sources) == set()

    def test_malformed_token(self, sources):
        with pytest.raises(MalformedTagToken):
            resolve(["country"], sources)


class TestAggregateTags:
    """Tests for aggregate_tags and sorted_tags."""

    def test_aggregate(self, sources):
        tags = aggregate_tags(sources)

        assert tags == {"topic": {"sports", "news"}, "country": {"UK", "US"}}

    def test_aggregate_no_sources(self):
        assert aggregate_tags([]) == {}

    def test_sorted(self, sources):
        rendered = sorted_tags(aggregate_tags(sources))

        assert list(rendered) == ["country", "topic"]
        assert rendered["topic"] == ["news", "sports"]
