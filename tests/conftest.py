"""Shared pytest fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from allnews.config import Config, DatabaseConfig, set_config
from allnews.models import Article, SourceConfig
from allnews.storage import ArticleStore, DatabaseManager

REFERENCE_TIME = datetime(2024, 5, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Isolate every test from config files and ALLNEWS_* variables."""
    monkeypatch.setenv("ALLNEWS_CONFIG", str(tmp_path / "missing.yml"))
    config = Config()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def db_manager(tmp_path):
    """File-backed SQLite database with the schema created."""
    manager = DatabaseManager(db_config=DatabaseConfig(type="sqlite", path=str(tmp_path / "test.db")))
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def store(db_manager: DatabaseManager) -> ArticleStore:
    """Article store on the test database."""
    return ArticleStore(db_manager)


@pytest.fixture
def make_article():
    """Factory for articles published relative to REFERENCE_TIME."""

    def factory(url: str, resource: str = "res", offset: timedelta = timedelta(0), title: str = ""):
        return Article(
            resource=resource,
            url=url,
            title=title or f"Title of {url}",
            description="",
            published=REFERENCE_TIME + offset,
        )

    return factory


@pytest.fixture
def sources() -> list[SourceConfig]:
    """Sources with overlapping tags."""
    return [
        SourceConfig(
            name="R1",
            url="https://r1.example.com/feed",
            tags={"topic": ["sports", "news"], "country": ["UK"]},
        ),
        SourceConfig(
            name="R2",
            url="https://r2.example.com/feed",
            tags={"topic": ["news"]},
        ),
        SourceConfig(
            name="R3",
            url="https://r3.example.com/feed",
            tags={"topic": ["sports"], "country": ["UK", "US"]},
        ),
    ]
