"""
Article sinks: where the collector delivers extracted articles.
"""

import sys
import threading
from abc import ABC, abstractmethod
from typing import Optional, TextIO

from allnews.models import Article


class ArticleSink(ABC):
    """Destination for collected articles.

    Implementations must accept concurrent ``save`` calls from several
    collector threads.
    """

    @abstractmethod
    def save(self, articles: list[Article]) -> None:
        """Persist a batch of articles.

        Raises:
            StorageError: If the batch could not be saved
        """
        ...


class DryRunSink(ArticleSink):
    """Sink that prints articles instead of storing them."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def save(self, articles: list[Article]) -> None:
        # One batch per write so lines from different sources don't interleave
        with self._lock:
            for article in articles:
                print(article, file=self.stream)
            self.stream.flush()
