"""Conversion of raw feed responses into Podcast and Episode models.

Missing fields become empty strings and unreadable dates become None.
Nothing in here raises on malformed feed data.
"""

import logging
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import List, Optional

from ..models import Episode, Podcast
from .feed_fetcher import EpisodeResponse, RssFeedResponse

logger = logging.getLogger(__name__)


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 feed date such as "Wed, 01 Jan 2020 10:00:00 +0000".

    Returns:
        The parsed datetime, or None if the value is missing or unreadable
    """
    if not value:
        return None

    try:
        return parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        logger.debug(f"Unparseable publish date: {value!r}")
        return None


def feed_items_to_episodes(items: List[EpisodeResponse]) -> List[Episode]:
    """Map raw feed items to episodes, keeping feed order."""
    return [
        Episode(
            guid=item.guid or "",
            title=item.title or "",
            description=item.description or "",
            media_url=item.url or "",
            media_type=item.type or "",
            release_date=parse_pub_date(item.pub_date),
            duration=item.duration or "",
        )
        for item in items
    ]


def normalize_feed(
    feed_url: str, image_url: str, raw_feed: RssFeedResponse
) -> Optional[Podcast]:
    """Build a transient podcast from a fetched feed.

    Args:
        feed_url: URL the feed was fetched from
        image_url: Artwork URL to carry over; the feed's own artwork is not used
        raw_feed: Parsed feed response

    Returns:
        Podcast without an id, or None if the feed has no episodes
    """
    if not raw_feed.episodes:
        logger.info(f"Feed has no episodes: {feed_url}")
        return None

    # Only an exactly empty description falls back; whitespace is kept
    if raw_feed.description == "":
        description = raw_feed.summary
    else:
        description = raw_feed.description

    return Podcast(
        feed_url=feed_url,
        title=raw_feed.title,
        description=description,
        image_url=image_url,
        last_updated=raw_feed.last_updated,
        episodes=feed_items_to_episodes(raw_feed.episodes),
    )
