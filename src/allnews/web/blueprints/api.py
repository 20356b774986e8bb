"""
Read API blueprint.

Serves stored articles, the tag aggregation and per-resource statistics
under ``/api/v1``.
"""

from flask import Blueprint, request
from pydantic import ValidationError

from allnews.config import Config
from allnews.core.tags import sorted_tags
from allnews.exceptions import MalformedTagToken, StorageError
from allnews.logger import get_logger
from allnews.storage import ArticleQuery, ArticleStore
from allnews.web.serializers import api_response, article_to_dict, stat_to_dict

logger = get_logger(__name__)

# Query string parameters forwarded to ArticleQuery.build
QUERY_PARAMS = ("date_start", "date_end", "filter", "limit", "offset")


def _validation_message(error: ValidationError) -> str:
    """Flatten pydantic errors into one line."""
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


class ApiBlueprint:
    """Blueprint for the read-only article API."""

    def __init__(self, store: ArticleStore, config: Config, url_prefix: str = "/api/v1"):
        """Initialize the API blueprint.

        Args:
            store: Article store to query
            config: Application config holding the sources and query limits
            url_prefix: URL prefix for all routes in this blueprint
        """
        self.store = store
        self.config = config
        self.blueprint = Blueprint("api", __name__, url_prefix=url_prefix)
        self._register_routes()

    def _register_routes(self):
        """Register all API routes on the blueprint."""
        self.blueprint.add_url_rule("/articles", view_func=self._articles, methods=["GET"])
        self.blueprint.add_url_rule("/tags", view_func=self._tags, methods=["GET"])
        self.blueprint.add_url_rule("/stats", view_func=self._stats, methods=["GET"])

    def _build_query(self) -> ArticleQuery:
        """Build search parameters from the query string.

        Raises:
            ValueError: If the page size exceeds the configured maximum
            pydantic.ValidationError: On an invalid parameter value
        """
        overrides = {name: request.args.get(name) or None for name in QUERY_PARAMS}
        # 0 keeps the default page size and offset
        for name in ("limit", "offset"):
            if overrides[name] is not None and overrides[name].strip() == "0":
                overrides[name] = None
        params = ArticleQuery.build(**overrides)

        if params.limit > self.config.query.max_limit:
            raise ValueError(f"limit must not exceed {self.config.query.max_limit}")
        return params

    def _articles(self):
        """Search articles, optionally restricted to sources matching tags."""
        tokens = request.args.getlist("tags[]") or request.args.getlist("tags")

        try:
            params = self._build_query()
        except ValidationError as e:
            return api_response(success=False, error=_validation_message(e), status=400)
        except ValueError as e:
            return api_response(success=False, error=str(e), status=400)

        if tokens:
            try:
                resources = self.config.get_resources_with_tags(tokens)
            except MalformedTagToken as e:
                return api_response(success=False, error=str(e), status=400)

            if not resources:
                return api_response(
                    success=False,
                    data={"articles": []},
                    error="No resources match the requested tags",
                    status=404,
                )
            params = params.model_copy(update={"resource_names": sorted(resources)})

        try:
            articles = self.store.query(params)
        except StorageError as e:
            logger.error(f"Article query failed: {e}")
            return api_response(success=False, error=str(e), status=500)

        if not articles:
            return api_response(
                success=False,
                data={"articles": []},
                error="No articles found",
                status=404,
            )

        return api_response(data={"articles": [article_to_dict(a) for a in articles]})

    def _tags(self):
        """Every tag value per category across the configured sources."""
        return api_response(data={"tags": sorted_tags(self.config.get_all_tags())})

    def _stats(self):
        """Per-resource article statistics."""
        try:
            stats = self.store.stats()
        except StorageError as e:
            logger.error(f"Stats query failed: {e}")
            return api_response(success=False, error=str(e), status=500)

        return api_response(data={"stats": [stat_to_dict(s) for s in stats]})
