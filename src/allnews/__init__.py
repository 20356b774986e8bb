"""
Allnews - RSS/Atom feed aggregator.

Gathers user-defined feeds into a single searchable timeline with
per-source scheduling, tag-based filtering and URL deduplication.
"""

__version__ = "0.1.0"
