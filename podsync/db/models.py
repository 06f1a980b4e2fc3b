"""SQLAlchemy ORM models for podcast and episode data."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class PodcastRow(Base):
    """Podcast subscription row.

    The integer primary key is assigned on insert and never changes.
    """

    __tablename__ = "podcasts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Core identifiers
    feed_url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)

    # Metadata from RSS feed
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    last_updated: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    # Subscription management
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    episodes: Mapped[List["EpisodeRow"]] = relationship(
        "EpisodeRow",
        back_populates="podcast",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_podcasts_feed_url", "feed_url"),)

    def __repr__(self) -> str:
        return f"<PodcastRow(id={self.id}, title={self.title!r})>"


class EpisodeRow(Base):
    """Episode row. Rows are inserted once and never updated."""

    __tablename__ = "episodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    podcast_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False
    )

    # GUID is unique per podcast; empty string when the feed omits it
    guid: Mapped[str] = mapped_column(String(2048), nullable=False, default="")

    # Metadata from RSS feed
    title: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    media_url: Mapped[str] = mapped_column(String(2048), nullable=False, default="")
    media_type: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    release_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    # Relationships
    podcast: Mapped["PodcastRow"] = relationship("PodcastRow", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("podcast_id", "guid", name="uq_episode_podcast_guid"),
        Index("ix_episodes_podcast_id", "podcast_id"),
    )

    def __repr__(self) -> str:
        return f"<EpisodeRow(id={self.id}, guid={self.guid!r})>"
