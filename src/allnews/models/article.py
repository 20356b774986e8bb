"""
Article data model for collected feed items.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from allnews.models.base import Base


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ArticleModel(Base):
    """SQLAlchemy ORM model for Article."""

    __tablename__ = "articles"

    __table_args__ = (
        Index("ix_articles_resource_published", "resource_name", "published"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resource_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)

    # Natural key, the only uniqueness boundary
    url: Mapped[str] = mapped_column(String(2048), nullable=False, unique=True)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    published: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    # Original feed item as JSON
    feed_item: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    def __repr__(self) -> str:
        return f"<ArticleModel(id={self.id}, resource='{self.resource_name}', url='{self.url}')>"


# Pydantic models


class Article(BaseModel):
    """A normalized feed item, immutable once created."""

    model_config = ConfigDict(frozen=True)

    resource: str = Field(..., description="Owning source name")
    url: str = Field(default="", description="Article link, used as dedup key")
    title: str = Field(default="")
    description: str = Field(default="")
    published: datetime = Field(..., description="Publication time (UTC)")
    raw_item: str = Field(default="{}", description="Original feed item serialized as JSON")

    @field_validator("published")
    @classmethod
    def normalize_published(cls, v: datetime) -> datetime:
        """Store publication time as aware UTC."""
        return as_utc(v)

    @classmethod
    def from_model(cls, model: ArticleModel) -> "Article":
        """Build an Article from a stored row."""
        return cls(
            resource=model.resource_name,
            url=model.url,
            title=model.title,
            description=model.description,
            published=model.published,
            raw_item=model.feed_item,
        )

    def to_row(self) -> dict:
        """Column values for an insert into ``articles``."""
        return {
            "resource_name": self.resource,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "published": self.published,
            "feed_item": self.raw_item,
        }

    def __str__(self) -> str:
        return f"{self.resource} [{self.url}]: {self.published.isoformat()} {self.title}"


class ResourceStat(BaseModel):
    """Aggregate statistics for one resource."""

    resource: str
    count: int = Field(..., ge=0)
    first_published: Optional[datetime] = None
    last_published: Optional[datetime] = None
