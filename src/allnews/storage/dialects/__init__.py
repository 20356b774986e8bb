"""Database dialect system for allnews.

Provides a dialect abstraction layer so the article store can run against
SQLite or PostgreSQL.
"""

from allnews.storage.dialects.base import BaseDialect
from allnews.storage.dialects.postgresql import PostgreSQLDialect
from allnews.storage.dialects.sqlite import SQLiteDialect

# Dialect registry
_DIALECT_REGISTRY: dict[str, type[BaseDialect]] = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,  # Alias
}


def get_dialect(name: str) -> BaseDialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name (sqlite, postgresql).
              "postgres" is accepted as an alias for "postgresql".

    Returns:
        Dialect instance

    Raises:
        ValueError: If dialect name is not supported
    """
    name_lower = name.lower()
    if name_lower not in _DIALECT_REGISTRY:
        supported = ", ".join(sorted(set(_DIALECT_REGISTRY.keys())))
        raise ValueError(
            f"Unsupported database dialect: {name!r}. "
            f"Supported dialects: {supported}"
        )

    return _DIALECT_REGISTRY[name_lower]()



__all__ = [
    "BaseDialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
