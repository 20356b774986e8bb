"""
Article search parameters.

Defaults:
    date_start      start of the current UTC day, or the Unix epoch when
                    ``query.default_start`` is "epoch"
    date_end        end of the current UTC day (23:59:59.999999)
    filter          "" (no title filter)
    limit           ``query.default_limit`` (50)
    offset          0
    resource_names  None (no resource restriction)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from allnews.config import get_config
from allnews.models.article import as_utc

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """First and last instant of the UTC day containing ``now``."""
    now = as_utc(now)
    start = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


class ArticleQuery(BaseModel):
    """Parameters of an article search. Both date bounds are inclusive."""

    model_config = ConfigDict(frozen=True)

    date_start: datetime
    date_end: datetime
    filter: str = ""
    limit: int = Field(default=50, ge=1)
    offset: int = Field(default=0, ge=0)
    resource_names: Optional[list[str]] = None

    @field_validator("date_start", "date_end")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        """Compare in UTC."""
        return as_utc(v)

    @model_validator(mode="after")
    def check_range(self) -> "ArticleQuery":
        """Reject inverted date ranges."""
        if self.date_start > self.date_end:
            raise ValueError("date_start must not be after date_end")
        return self

    @classmethod
    def build(cls, now: Optional[datetime] = None, **overrides: Any) -> "ArticleQuery":
        """Build a query from the defaults and named overrides.

        Overrides set to None keep the default.

        Args:
            now: Reference time for the default date range (default: current time)
            **overrides: Field values to override

        Returns:
            ArticleQuery

        Raises:
            TypeError: On an unknown parameter name
            pydantic.ValidationError: On an invalid parameter value
        """
        query_config = get_config().query

        day_start, day_end = day_bounds(now or datetime.now(timezone.utc))
        params: dict[str, Any] = {
            "date_start": EPOCH if query_config.default_start == "epoch" else day_start,
            "date_end": day_end,
            "filter": "",
            "limit": query_config.default_limit,
            "offset": 0,
            "resource_names": None,
        }

        for name, value in overrides.items():
            if name not in params:
                raise TypeError(f"Unknown article query parameter: {name!r}")
            if value is not None:
                params[name] = value

        if params["resource_names"] is not None:
            params["resource_names"] = list(params["resource_names"])

        return cls(**params)
