"""
Feed source configuration model.
"""

import re
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_FULL = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+")


def parse_duration(value: Any) -> Any:
    """Parse a duration in "1h30m" / "10s" / "500ms" notation.

    Numbers are taken as seconds. Anything else is returned unchanged so that
    pydantic can still try its own formats (ISO 8601, "HH:MM:SS").

    Args:
        value: Raw duration value

    Returns:
        timedelta, or the original value if it is not in a known notation
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        return value

    text = value.strip()
    if text == "0":
        return timedelta(0)
    if not _DURATION_FULL.fullmatch(text):
        return value

    seconds = 0.0
    for amount, unit in _DURATION_PART.findall(text):
        seconds += float(amount) * _DURATION_UNITS[unit]
    return timedelta(seconds=seconds)


def format_duration(value: timedelta) -> str:
    """Render a timedelta in compact "1h30m" notation."""
    seconds = value.total_seconds()
    if seconds < 1:
        return f"{seconds * 1000:g}ms"

    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")
    if secs or not parts:
        parts.append(f"{secs:g}s")
    return "".join(parts)


def _as_list(values: Any) -> list:
    if values is None:
        return []
    if isinstance(values, (list, tuple, set, frozenset)):
        return list(values)
    return [values]


def _tag_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class SourceConfig(BaseModel):
    """One configured feed endpoint.

    Several entries may share a ``name``; they form a single source group
    but are fetched independently, each with its own timeout and period.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Resource name articles are stored under")
    url: str = Field(..., min_length=1, description="Feed URL")
    timeout: timedelta = Field(default=timedelta(seconds=30), description="Fetch deadline")
    refresh_period: timedelta = Field(
        default=timedelta(minutes=60),
        alias="update",
        description="Interval between fetches in continuous mode",
    )
    tags: dict[str, list[str]] = Field(default_factory=dict, description="Tag category -> values")

    @field_validator("timeout", "refresh_period", mode="before")
    @classmethod
    def parse_durations(cls, v: Any) -> Any:
        """Accept "10s" / "1h" style durations."""
        return parse_duration(v)

    @field_validator("timeout", "refresh_period")
    @classmethod
    def validate_positive(cls, v: timedelta) -> timedelta:
        """Durations must be positive."""
        if v <= timedelta(0):
            raise ValueError("Duration must be positive")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> Any:
        """Allow a single scalar where a list is expected; values are strings.

        YAML reads ``2024`` or ``true`` as int/bool, so scalars are converted
        back to their YAML spelling.
        """
        if v is None:
            return {}
        if isinstance(v, dict):
            return {
                str(category): [_tag_value(value) for value in _as_list(values)]
                for category, values in v.items()
            }
        return v

    def __str__(self) -> str:
        return (
            f"{self.name} [{self.url}] timeout={format_duration(self.timeout)} "
            f"update={format_duration(self.refresh_period)}"
        )
