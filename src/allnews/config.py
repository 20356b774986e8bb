"""
Configuration management for allnews.

Uses Pydantic for validation and pydantic-settings for environment variable support.
Feed sources are read from a YAML file (``ALLNEWS_CONFIG``, default ``config.yml``).
"""

import os
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from allnews.exceptions import ConfigError
from allnews.models.source import SourceConfig

CONFIG_ENV_VAR = "ALLNEWS_CONFIG"
DEFAULT_CONFIG_FILE = "config.yml"


class DatabaseConfig(BaseSettings):
    """Database configuration.

    Supports SQLite and PostgreSQL backends.

    For SQLite:
        - Only `path` is required
        - Environment variable: DB_PATH

    For PostgreSQL:
        - Either set `url` to a full connection string, or
        - Set `type` to "postgresql" and `host`, `database`, `user`, `password`
        - Environment variables: DB_URL, DB_TYPE, DB_HOST, DB_DATABASE, ...
    """

    model_config = SettingsConfigDict(env_prefix="DB_")

    type: str = Field(default="sqlite", description="Database type: sqlite, postgresql")

    # Full connection URL, takes precedence over the individual fields
    url: str | None = Field(default=None, description="SQLAlchemy/libpq connection URL")

    # SQLite configuration
    path: str = Field(default="data/allnews.db", description="Database file path (SQLite)")

    # PostgreSQL configuration
    host: str | None = Field(default=None, description="Database host")
    port: int | None = Field(default=None, description="Database port (default: 5432)")
    database: str | None = Field(default=None, description="Database name")
    user: str | None = Field(default=None, description="Database user")
    password: str | None = Field(default=None, description="Database password")
    ssl_mode: str | None = Field(default=None, description="SSL mode: disable, prefer, require, ...")

    # Common settings
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=10, ge=0, description="Max overflow connections")

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        """Normalize and validate database type name."""
        v = v.lower().strip()
        if v == "postgres":
            v = "postgresql"
        valid_types = ["sqlite", "postgresql"]
        if v not in valid_types:
            raise ValueError(f"Invalid database type: {v!r}. Must be one of {valid_types}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        """Validate port number."""
        if v is not None and not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def resolved_type(self) -> str:
        """Database type, inferred from `url` when one is given."""
        if self.url:
            scheme = self.url.split(":", 1)[0].split("+", 1)[0].lower()
            if scheme in ("postgres", "postgresql"):
                return "postgresql"
            if scheme == "sqlite":
                return "sqlite"
        return self.type


class SchedulerConfig(BaseSettings):
    """Collection scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    timezone: str = Field(default="UTC", description="Scheduler timezone")

    # 0 means one worker thread per source
    max_workers: int = Field(default=0, ge=0, description="Worker threads (0 = one per source)")
    misfire_grace_time: int = Field(default=30, ge=1, description="Misfire grace time in seconds")
    coalesce: bool = Field(default=True, description="Coalesce missed runs into one")


class FetcherConfig(BaseSettings):
    """RSS/Atom fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    user_agent: str = Field(
        default="allnews/0.1.0 (RSS reader)",
        description="User-Agent header"
    )
    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)
    max_content_length: int = Field(
        default=10_000_000,
        ge=1_000,
        description="Maximum feed document size in bytes"
    )


class QueryConfig(BaseSettings):
    """Article query defaults."""

    model_config = SettingsConfigDict(env_prefix="QUERY_")

    # "today": start of the current UTC day; "epoch": 1970-01-01T00:00:00Z
    default_start: str = Field(default="today", description="Default lower date bound")
    default_limit: int = Field(default=50, ge=1, description="Default page size")
    max_limit: int = Field(default=1000, ge=1, description="Largest accepted page size")

    @field_validator("default_start")
    @classmethod
    def validate_default_start(cls, v: str) -> str:
        """Validate default lower bound mode."""
        v = v.lower().strip()
        if v not in ("today", "epoch"):
            raise ValueError("default_start must be 'today' or 'epoch'")
        return v


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <magenta>{extra[source]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_path: str = Field(default="logs/allnews.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class WebConfig(BaseSettings):
    """Web API configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="127.0.0.1", description="Web server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Web server port")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def listen_addr(self) -> str:
        """Address in host:port form."""
        return f"{self.host}:{self.port}"


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ALLNEWS_",
        case_sensitive=False,
        extra="ignore",
    )

    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="allnews", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    # Feed sources, in file order
    sources: list[SourceConfig] = Field(default_factory=list)

    def get_all_tags(self) -> dict[str, set[str]]:
        """Get every tag value seen per category across all sources."""
        from allnews.core.tags import aggregate_tags

        return aggregate_tags(self.sources)

    def get_resources_with_tags(self, tag_tokens: Iterable[str]) -> set[str]:
        """Get names of sources matching ``category:value`` tokens.

        Raises:
            MalformedTagToken: If a token is not in 'category:value' format
        """
        from allnews.core.tags import resolve

        return resolve(list(tag_tokens), self.sources)


# Global configuration instance
_config: Optional[Config] = None

_NESTED_CONFIGS = {
    "database": DatabaseConfig,
    "scheduler": SchedulerConfig,
    "fetcher": FetcherConfig,
    "query": QueryConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}


def _apply_legacy_keys(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Map the flat ``db`` / ``listen_addr`` keys onto nested sections."""
    config_dict = dict(config_dict)

    db_url = config_dict.pop("db", None)
    if db_url:
        database = dict(config_dict.get("database") or {})
        database.setdefault("url", db_url)
        config_dict["database"] = database

    listen_addr = config_dict.pop("listen_addr", None)
    if listen_addr:
        host, _, port = str(listen_addr).rpartition(":")
        if not port.isdigit():
            raise ConfigError(f"Invalid listen_addr: {listen_addr!r}, expected host:port")
        web = dict(config_dict.get("web") or {})
        web.setdefault("host", host or "0.0.0.0")
        web.setdefault("port", int(port))
        config_dict["web"] = web

    return config_dict


def parse_config(config_dict: dict[str, Any]) -> Config:
    """Build a Config from a parsed YAML mapping.

    Values from the mapping take precedence over environment variables
    within each nested section.

    Raises:
        ConfigError: If the mapping does not describe a valid configuration
    """
    if not isinstance(config_dict, dict):
        raise ConfigError("Configuration root must be a mapping")

    config_dict = _apply_legacy_keys(config_dict)

    try:
        main_config = {}
        for key, value in config_dict.items():
            if key in _NESTED_CONFIGS:
                main_config[key] = _NESTED_CONFIGS[key](**(value or {}))
            else:
                main_config[key] = value

        return Config(**main_config)
    except ValidationError as e:
        raise ConfigError("Invalid configuration", e) from e


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise ConfigError(f"Configuration file not found: {yaml_path}")

    try:
        with yaml_file.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read configuration file {yaml_path}", e) from e

    return parse_config(config_dict)


def get_config_path() -> str:
    """Path of the YAML configuration file."""
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)


def get_config() -> Config:
    """Get the global configuration instance.

    Loads the YAML file on first use if it exists, otherwise falls back to
    environment variables and defaults.
    """
    global _config
    if _config is None:
        path = get_config_path()
        if Path(path).exists():
            _config = load_config_from_yaml(path)
        else:
            _config = Config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace (or with None, reset) the global configuration instance."""
    global _config
    _config = config


def reload_config() -> Config:
    """Reload configuration from environment and YAML file."""
    set_config(None)
    return get_config()
