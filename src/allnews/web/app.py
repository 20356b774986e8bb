"""
Flask application serving the article API and the stats page.
"""

from typing import Any, Optional

from flask import Flask, render_template

from allnews.config import Config, get_config
from allnews.core.tags import sorted_tags
from allnews.exceptions import StorageError
from allnews.logger import get_logger
from allnews.storage import ArticleStore
from allnews.web.blueprints import ApiBlueprint
from allnews.web.serializers import api_response

logger = get_logger(__name__)


def create_app(
    store: Optional[ArticleStore] = None,
    config: Optional[Config] = None,
    debug: bool = False,
) -> Flask:
    """Create and configure Flask application.

    Args:
        store: Article store (default: one built from the database config)
        config: Application config (default: global config)
        debug: Enable debug mode

    Returns:
        Configured Flask application
    """
    app = Flask(__name__, template_folder="templates")

    config = config or get_config()
    store = store or ArticleStore()

    app.config["DEBUG"] = debug or config.web.debug
    app.extensions["allnews_store"] = store

    def format_datetime(value: Optional[Any], format_str: str = "%Y-%m-%d %H:%M") -> str:
        """Format a UTC datetime for display."""
        if not value:
            return "never"
        return value.strftime(format_str)

    app.jinja_env.filters["format_datetime"] = format_datetime

    app.register_blueprint(ApiBlueprint(store, config).blueprint)

    @app.route("/health")
    def health():
        """Liveness probe backed by a database round trip."""
        try:
            store.ping()
        except StorageError as e:
            logger.error(f"Health check failed: {e}")
            return api_response(success=False, data={"status": "error"}, error=str(e), status=500)

        return api_response(data={"status": "ok"})

    @app.route("/stats")
    def stats_page():
        """HTML page with per-resource statistics and the tag list."""
        tags = sorted_tags(config.get_all_tags())
        try:
            stats = store.stats()
        except StorageError as e:
            logger.error(f"Stats page failed: {e}")
            return render_template("stats.html", stats=[], tags=tags, error=str(e)), 500

        return render_template("stats.html", stats=stats, tags=tags, error=None)

    return app
