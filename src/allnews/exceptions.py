"""
Exception hierarchy for allnews.

Collection failures (fetch, serialization, storage) are contained at the
per-source cycle boundary; configuration failures abort startup; query
failures surface to the caller as a failed request.
"""

from typing import Optional


class AllnewsError(Exception):
    """Base class for all allnews errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message}: {self.cause}"
        return message


class ConfigError(AllnewsError):
    """Configuration file is missing, unreadable or invalid."""


class MalformedTagToken(AllnewsError):
    """Tag query token is not in 'tagCategory:tagValue' format."""

    def __init__(self, token: str):
        super().__init__(f"{token!r} has to be in 'tagCategory:tagValue' format")
        self.token = token


class FetchError(AllnewsError):
    """Feed could not be downloaded or parsed."""

    def __init__(self, url: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{message} ({url})", cause)
        self.url = url


class FetchTimeout(FetchError):
    """Feed fetch did not complete within its deadline."""


class SerializationError(AllnewsError):
    """Feed item could not be serialized for storage."""


class StorageError(AllnewsError):
    """Article storage operation failed."""


__all__ = [
    "AllnewsError",
    "ConfigError",
    "MalformedTagToken",
    "FetchError",
    "FetchTimeout",
    "SerializationError",
    "StorageError",
]
