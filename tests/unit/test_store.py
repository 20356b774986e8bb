"""Tests for the article store."""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from allnews.exceptions import StorageError
from allnews.models import Article
from allnews.storage import ArticleQuery, ArticleStore, DatabaseManager, DryRunSink
from allnews.storage.query import EPOCH, day_bounds
from allnews.storage.repositories import ArticleRepository

# Matches the publication time used by the make_article fixture
REFERENCE_TIME = datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def query(**overrides) -> ArticleQuery:
    return ArticleQuery.build(now=REFERENCE_TIME, **overrides)


class TestArticleQuery:
    """Tests for ArticleQuery defaults."""

    def test_defaults(self):
        params = query()
        start, end = day_bounds(REFERENCE_TIME)

        assert params.date_start == start
        assert params.date_end == end
        assert params.date_end == datetime(2024, 5, 17, 23, 59, 59, 999999, tzinfo=timezone.utc)
        assert params.filter == ""
        assert params.limit == 50
        assert params.offset == 0
        assert params.resource_names is None

    def test_epoch_default(self, default_config):
        default_config.query.default_start = "epoch"

        assert query().date_start == EPOCH

    def test_none_keeps_default(self):
        assert query(limit=None, filter=None).limit == 50

    def test_unknown_parameter(self):
        with pytest.raises(TypeError):
            query(page=2)

    def test_string_values(self):
        params = query(date_start="2024-05-01T00:00:00Z", limit="10")

        assert params.date_start == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert params.limit == 10

    def test_naive_dates_are_utc(self):
        params = query(date_start=datetime(2024, 5, 1))

        assert params.date_start.tzinfo is not None
        assert params.date_start == datetime(2024, 5, 1, tzinfo=timezone.utc)

    def test_inverted_range(self):
        with pytest.raises(ValueError):
            query(date_start=REFERENCE_TIME, date_end=REFERENCE_TIME - HOUR)

    @pytest.mark.parametrize("overrides", [{"limit": 0}, {"offset": -1}, {"limit": "many"}])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            query(**overrides)


class TestArticleStoreSave:
    """Tests for ArticleStore.save deduplication."""

    def test_save_and_query(self, store: ArticleStore, make_article):
        store.save([make_article("https://a.example.com/1")])

        articles = store.query(query())

        assert len(articles) == 1
        assert articles[0].url == "https://a.example.com/1"
        assert articles[0].published == REFERENCE_TIME

    def test_duplicate_url_first_write_wins(self, store: ArticleStore, make_article):
        store.save([make_article("https://a.example.com/1", title="first")])
        store.save([make_article("https://a.example.com/1", title="second")])

        articles = store.query(query())

        assert len(articles) == 1
        assert articles[0].title == "first"

    def test_duplicate_within_batch(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/1", title="first"),
                make_article("https://a.example.com/1", title="second"),
                make_article("https://a.example.com/2"),
            ]
        )

        articles = store.query(query())

        assert len(articles) == 2
        assert {a.title for a in articles} == {"first", "Title of https://a.example.com/2"}

    def test_save_empty(self, store: ArticleStore):
        store.save([])

        assert store.query(query()) == []

    def test_large_batch(self, store: ArticleStore, make_article):
        articles = [make_article(f"https://a.example.com/{i}") for i in range(1200)]

        store.save(articles)

        assert len(store.query(query(limit=2000))) == 1200

    def test_concurrent_saves(self, store: ArticleStore, make_article):
        """Parallel writers never create duplicate URLs."""
        batch = [make_article(f"https://a.example.com/{i}") for i in range(50)]
        errors = []

        def writer():
            try:
                store.save(batch)
            except StorageError as e:
                errors.append(e)

        threads = [threading.Thread(target=writer) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(store.query(query(limit=1000))) == 50

    def test_storage_error(self, store: ArticleStore, make_article, monkeypatch):
        def broken(self, articles):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ArticleRepository, "insert_ignore_duplicates", broken)

        with pytest.raises(StorageError):
            store.save([make_article("https://a.example.com/1")])


class TestArticleStoreQuery:
    """Tests for ArticleStore.query."""

    def test_ordering(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/old", offset=-25 * HOUR),
                make_article("https://a.example.com/now"),
                make_article("https://a.example.com/new", offset=HOUR),
            ]
        )

        articles = store.query(query(date_start=EPOCH))

        assert [a.url for a in articles] == [
            "https://a.example.com/new",
            "https://a.example.com/now",
            "https://a.example.com/old",
        ]

    def test_date_bounds(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/old", offset=-25 * HOUR),
                make_article("https://a.example.com/now"),
                make_article("https://a.example.com/new", offset=HOUR),
            ]
        )

        articles = store.query(query(date_start=REFERENCE_TIME - HOUR))

        assert [a.url for a in articles] == [
            "https://a.example.com/new",
            "https://a.example.com/now",
        ]

    def test_bounds_inclusive(self, store: ArticleStore, make_article):
        store.save([make_article("https://a.example.com/1")])

        articles = store.query(query(date_start=REFERENCE_TIME, date_end=REFERENCE_TIME))

        assert len(articles) == 1

    def test_default_range_is_today(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/yesterday", offset=-25 * HOUR),
                make_article("https://a.example.com/today"),
            ]
        )

        articles = store.query(query())

        assert [a.url for a in articles] == ["https://a.example.com/today"]

    def test_title_filter_case_insensitive(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/1", title="Python 3.13 released"),
                make_article("https://a.example.com/2", title="Rust news"),
            ]
        )

        articles = store.query(query(filter="python"))

        assert [a.url for a in articles] == ["https://a.example.com/1"]

    def test_title_filter_literal(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/1", title="100% growth"),
                make_article("https://a.example.com/2", title="100 things"),
            ]
        )

        articles = store.query(query(filter="100%"))

        assert [a.url for a in articles] == ["https://a.example.com/1"]

    def test_resource_names(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://a.example.com/1", resource="R1"),
                make_article("https://a.example.com/2", resource="R2"),
                make_article("https://a.example.com/3", resource="R3"),
            ]
        )

        articles = store.query(query(resource_names=["R1", "R3"]))

        assert {a.resource for a in articles} == {"R1", "R3"}

    def test_limit_offset(self, store: ArticleStore, make_article):
        store.save(
            [make_article(f"https://a.example.com/{i}", offset=i * timedelta(minutes=1)) for i in range(5)]
        )

        articles = store.query(query(limit=2, offset=1))

        assert [a.url for a in articles] == ["https://a.example.com/3", "https://a.example.com/2"]

    def test_ties_by_insertion_order(self, store: ArticleStore, make_article):
        store.save([make_article("https://a.example.com/first")])
        store.save([make_article("https://a.example.com/second")])

        articles = store.query(query())

        assert [a.url for a in articles] == [
            "https://a.example.com/second",
            "https://a.example.com/first",
        ]


class TestArticleStoreStats:
    """Tests for ArticleStore.stats and ping."""

    def test_stats(self, store: ArticleStore, make_article):
        store.save(
            [
                make_article("https://b.example.com/1", resource="B", offset=-HOUR),
                make_article("https://b.example.com/2", resource="B", offset=HOUR),
                make_article("https://a.example.com/1", resource="A"),
            ]
        )

        stats = store.stats()

        assert [s.resource for s in stats] == ["A", "B"]
        assert stats[1].count == 2
        assert stats[1].first_published == REFERENCE_TIME - HOUR
        assert stats[1].last_published == REFERENCE_TIME + HOUR

    def test_stats_empty(self, store: ArticleStore):
        assert store.stats() == []

    def test_ping(self, store: ArticleStore):
        store.ping()

    def test_missing_table(self, tmp_path):
        store = ArticleStore(DatabaseManager(str(tmp_path / "empty.db")))

        with pytest.raises(StorageError):
            store.query(query())
        with pytest.raises(StorageError):
            store.stats()

        store.close()


class TestDatabaseManager:
    """Tests for DatabaseManager."""

    def test_migrate(self, tmp_path, make_article):
        manager = DatabaseManager(str(tmp_path / "migrated.db"))
        manager.migrate()

        store = ArticleStore(manager)
        store.save([make_article("https://a.example.com/1")])

        assert len(store.query(query())) == 1
        store.close()

    def test_memory_database(self, make_article):
        with DatabaseManager(":memory:") as manager:
            manager.init_db()
            store = ArticleStore(manager)
            store.save([make_article("https://a.example.com/1")])

            assert len(store.query(query())) == 1

    def test_session_rollback(self, db_manager: DatabaseManager, make_article):
        with pytest.raises(RuntimeError):
            with db_manager.session() as session:
                ArticleRepository(session).insert_ignore_duplicates([make_article("https://a.example.com/1")])
                raise RuntimeError("boom")

        with db_manager.session() as session:
            assert ArticleRepository(session).search(query(date_start=EPOCH)) == []


class TestDryRunSink:
    """Tests for DryRunSink."""

    def test_prints_articles(self, make_article):
        import io

        output = io.StringIO()
        sink = DryRunSink(output)

        sink.save([make_article("https://a.example.com/1", resource="R1", title="Hello")])

        assert output.getvalue() == (
            "R1 [https://a.example.com/1]: 2024-05-17T12:00:00+00:00 Hello\n"
        )

    def test_article_str(self):
        article = Article(
            resource="R1",
            url="https://a.example.com/1",
            title="Hello",
            published=REFERENCE_TIME,
        )

        assert str(article) == "R1 [https://a.example.com/1]: 2024-05-17T12:00:00+00:00 Hello"
