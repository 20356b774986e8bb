"""API blueprints for allnews."""

from allnews.web.blueprints.api import ApiBlueprint

__all__ = ["ApiBlueprint"]
