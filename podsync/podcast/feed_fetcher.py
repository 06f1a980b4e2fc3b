"""RSS/Atom feed fetching.

Downloads feed documents with aiohttp and parses them with feedparser into
raw response records. The records keep the feed's own strings untouched;
turning them into podcasts and episodes is the normalizer's job.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import aiohttp
import feedparser

from ..config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

ITUNES_NAMESPACE = "http://www.itunes.com/dtds/podcast-1.0.dtd"


@dataclass
class EpisodeResponse:
    """One feed item as found in the document. Any field may be missing."""

    guid: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    type: Optional[str] = None
    pub_date: Optional[str] = None
    duration: Optional[str] = None


@dataclass
class RssFeedResponse:
    """Channel-level feed data plus its items.

    `episodes` is None when the document carried no item list at all.
    """

    title: str = ""
    description: str = ""
    summary: str = ""
    last_updated: str = ""
    episodes: Optional[List[EpisodeResponse]] = field(default_factory=list)


class FeedFetcher:
    """Fetches and parses podcast feeds.

    Example:
        fetcher = FeedFetcher(timeout=30)
        response = await fetcher.get_feed("https://example.com/feed.xml")
        if response is None:
            print("could not load feed")
    """

    DEFAULT_TIMEOUT = 30

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, user_agent: Optional[str] = None):
        """Initialize the feed fetcher.

        Args:
            timeout: Total request timeout in seconds
            user_agent: Custom user agent string for requests
        """
        self.timeout = timeout
        self.user_agent = user_agent or DEFAULT_USER_AGENT

    async def get_feed(self, feed_url: str) -> Optional[RssFeedResponse]:
        """Download and parse the feed at `feed_url`.

        Returns:
            RssFeedResponse, or None if the feed could not be downloaded or parsed
        """
        logger.info(f"Fetching feed: {feed_url}")

        try:
            content = await self._fetch_bytes(feed_url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to fetch feed {feed_url}: {e}")
            return None

        return self.parse_bytes(content, feed_url)

    async def _fetch_bytes(self, feed_url: str) -> bytes:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": self.user_agent},
        ) as session:
            async with session.get(feed_url, allow_redirects=True) as response:
                response.raise_for_status()
                return await response.read()

    def parse_bytes(self, content: bytes, feed_url: str = "") -> Optional[RssFeedResponse]:
        """Parse a feed document.

        Args:
            content: Raw RSS/Atom document
            feed_url: Original URL of the feed (for log messages)

        Returns:
            RssFeedResponse, or None if the content is not a feed
        """
        feed = feedparser.parse(content)

        if feed.bozo and feed.get("bozo_exception"):
            logger.warning(f"Feed parsing warning for {feed_url}: {feed.bozo_exception}")

        if not feed.feed and not feed.entries:
            logger.warning(f"Not a usable feed: {feed_url}")
            return None

        f = feed.feed
        description, summary = self._channel_texts(content)
        if description is None:
            description = f.get("subtitle", f.get("description")) or ""
        if summary is None:
            summary = f.get("summary") or ""

        response = RssFeedResponse(
            title=f.get("title") or "",
            description=description,
            summary=summary,
            last_updated=f.get("updated") or f.get("published") or "",
            episodes=[self._parse_entry(entry) for entry in feed.entries],
        )

        logger.debug(f"Parsed feed '{response.title}' with {len(response.episodes)} items")
        return response

    def _channel_texts(self, content: bytes) -> Tuple[Optional[str], Optional[str]]:
        """Read the RSS channel <description> and <itunes:summary> verbatim.

        feedparser stores both in the same "subtitle" slot, so whichever
        appears first wins, and it strips whitespace-only text. Reading the
        elements directly keeps them apart.

        Returns:
            (description, summary), each None when the element is absent or
            the document is not well-formed RSS
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError:
            return None, None

        channel = root.find("channel")
        if channel is None:
            return None, None

        def text_of(tag: str) -> Optional[str]:
            element = channel.find(tag)
            if element is None:
                return None
            return element.text or ""

        return text_of("description"), text_of(f"{{{ITUNES_NAMESPACE}}}summary")

    def _parse_entry(self, entry: feedparser.FeedParserDict) -> EpisodeResponse:
        url = None
        media_type = None
        enclosures = entry.get("enclosures") or []
        if enclosures:
            url = enclosures[0].get("href") or enclosures[0].get("url")
            media_type = enclosures[0].get("type")

        return EpisodeResponse(
            guid=entry.get("id"),
            title=entry.get("title"),
            description=entry.get("summary"),
            url=url,
            type=media_type,
            pub_date=entry.get("published"),
            duration=entry.get("itunes_duration"),
        )
