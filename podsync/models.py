"""Domain models for podcasts, episodes and sync results.

These are plain dataclasses passed between the feed normalizer, the sync
service and the repository. They are detached from any database session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class Episode:
    """A single podcast episode.

    The guid is the only key used to decide whether an episode is new. Feeds
    that omit it produce an empty-string guid, which is still a valid key.
    """

    guid: str = ""
    podcast_id: Optional[int] = None
    title: str = ""
    description: str = ""
    media_url: str = ""
    media_type: str = ""
    release_date: Optional[datetime] = None
    duration: str = ""


@dataclass
class Podcast:
    """A podcast and, when loaded, its episodes.

    `id` stays None until the repository inserts the podcast.
    """

    feed_url: str
    title: str = ""
    description: Optional[str] = ""
    image_url: str = ""
    last_updated: str = ""
    id: Optional[int] = None
    is_subscribed: bool = True
    episodes: List[Episode] = field(default_factory=list)


@dataclass
class PodcastUpdateInfo:
    """New episode count for one podcast in one sync pass."""

    feed_url: str
    name: str
    new_count: int


@dataclass
class SyncFailure:
    """A podcast whose new episodes could not be persisted."""

    feed_url: str
    error: str


@dataclass
class SyncResult:
    """Outcome of a batch sync pass.

    Attributes:
        updates: One entry per podcast that gained episodes, in snapshot order.
        failures: Podcasts whose new episodes failed to persist.
        cancelled: True if the pass stopped early on request.
    """

    updates: List[PodcastUpdateInfo] = field(default_factory=list)
    failures: List[SyncFailure] = field(default_factory=list)
    cancelled: bool = False

    @property
    def new_episodes(self) -> int:
        """Total number of new episodes across all podcasts."""
        return sum(update.new_count for update in self.updates)
