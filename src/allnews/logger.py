"""
Logging setup for allnews.

Every record carries a ``source`` extra naming the feed group it concerns,
or "-" outside a collection cycle. Concurrent source loops write to the same
sinks, so the log format shows it next to the level.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from allnews.config import LoggingConfig, get_config

DEFAULT_EXTRA = {"source": "-"}


def _handlers(config: LoggingConfig, level: str, log_file: Optional[str]) -> list[dict]:
    handlers = []

    if config.console_enabled:
        handlers.append(
            {
                "sink": sys.stderr,
                "format": config.format,
                "level": level,
                "colorize": True,
                "backtrace": True,
                "diagnose": False,
            }
        )

    path = log_file or (config.file_path if config.file_enabled else None)
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            {
                "sink": path,
                "format": config.format,
                "level": level,
                "rotation": config.rotation,
                "retention": config.retention,
                "compression": "zip",
                "encoding": "utf-8",
                # Fetch workers log from several threads
                "enqueue": True,
                "backtrace": True,
                "diagnose": False,
            }
        )

    return handlers


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> None:
    """Replace all sinks with the configured console and file sinks.

    Args:
        level: Log level, overriding the configured one
        log_file: Log file path; enables file logging when given
        config: Logging section (default: global config)
    """
    config = config or get_config().logging
    _logger.configure(
        handlers=_handlers(config, level or config.level, log_file),
        extra=DEFAULT_EXTRA,
    )


def get_logger(name: Optional[str] = None, source: Optional[str] = None):
    """Get a logger bound to a module name and, optionally, a feed source.

    Args:
        name: Logger name (typically __name__ from calling module)
        source: Source name shown in the ``source`` field

    Returns:
        Logger instance
    """
    extra = {}
    if name:
        extra["name"] = name
    if source:
        extra["source"] = source
    if extra:
        return _logger.bind(**extra)
    return _logger


logger = _logger

__all__ = [
    "DEFAULT_EXTRA",
    "setup_logger",
    "get_logger",
    "logger",
]
