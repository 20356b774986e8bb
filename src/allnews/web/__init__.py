"""Web API and stats page for allnews."""

from allnews.web.app import create_app

__all__ = ["create_app"]
