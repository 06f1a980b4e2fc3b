"""Podcast feed handling.

Provides functionality for:
- RSS feed fetching and parsing
- Feed normalization into podcasts and episodes
- Subscription sync and new-episode detection
"""

from .feed_fetcher import EpisodeResponse, FeedFetcher, RssFeedResponse
from .feed_sync import FeedSyncService, find_new_episodes
from .normalizer import normalize_feed, parse_pub_date

__all__ = [
    "EpisodeResponse",
    "FeedFetcher",
    "RssFeedResponse",
    "FeedSyncService",
    "find_new_episodes",
    "normalize_feed",
    "parse_pub_date",
]
