"""Tests for the command line interface."""

import signal
from datetime import datetime, timezone

import pytest

from allnews import __version__
from allnews.cli import build_parser, main
from allnews.config import DatabaseConfig
from allnews.core.fetcher import FeedItem, ParsedFeed
from allnews.storage import ArticleQuery, ArticleStore, DatabaseManager

PUBLISHED = datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)


class StaticFetcher:
    """Fetcher answering every URL with one article."""

    def fetch(self, url, timeout):
        return ParsedFeed(
            url=url,
            items=[FeedItem(link=f"{url}/1", title="Headline", published_at=PUBLISHED)],
        )


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cli.db"


@pytest.fixture
def config_file(tmp_path, db_path):
    path = tmp_path / "config.yml"
    path.write_text(
        f"""
db: sqlite:///{db_path}
sources:
  - name: A
    url: https://a.example.com/feed
    timeout: 5s
    update: 1h
  - name: B
    url: https://b.example.com/feed
    timeout: 5s
    update: 1h
"""
    )
    return str(path)


@pytest.fixture(autouse=True)
def static_fetcher(monkeypatch):
    monkeypatch.setattr("allnews.core.scheduler.FeedFetcher", StaticFetcher)


class TestParser:
    """Tests for argument parsing."""

    def test_collect_flags(self):
        args = build_parser().parse_args(["collect", "-c", "--dry-run", "--name", "A", "--name", "B"])

        assert args.continuous is True
        assert args.dry_run is True
        assert args.name == ["A", "B"]

    def test_serve_flags(self):
        args = build_parser().parse_args(["serve", "--with-collect"])

        assert args.with_collect is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yml"), "collect"]) == 1

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("sources:\n  - name: A\n    timeout: never\n")

        assert main(["--config", str(path), "collect"]) == 1

    def test_collect_dry_run(self, config_file, capsys, db_path):
        assert main(["--config", config_file, "collect", "--dry-run"]) == 0

        out = capsys.readouterr().out
        assert "A [https://a.example.com/feed/1]" in out
        assert "B [https://b.example.com/feed/1]" in out
        assert not db_path.exists()

    def test_collect_by_name(self, config_file, capsys):
        assert main(["--config", config_file, "collect", "--dry-run", "--name", "B"]) == 0

        out = capsys.readouterr().out
        assert "B [https://b.example.com/feed/1]" in out
        assert "https://a.example.com" not in out

    def test_migrate_then_collect(self, config_file, db_path):
        assert main(["--config", config_file, "migratedb"]) == 0
        assert main(["--config", config_file, "collect"]) == 0

        store = ArticleStore(DatabaseManager(db_config=DatabaseConfig(url=f"sqlite:///{db_path}")))
        articles = store.query(ArticleQuery.build(date_start=datetime(2024, 5, 17, tzinfo=timezone.utc),
                                                  date_end=datetime(2024, 5, 18, tzinfo=timezone.utc)))
        store.close()

        assert sorted(a.resource for a in articles) == ["A", "B"]

    def test_collect_restores_signal_handlers(self, config_file):
        before = signal.getsignal(signal.SIGTERM)

        main(["--config", config_file, "collect", "--dry-run"])

        assert signal.getsignal(signal.SIGTERM) is before
