"""Tests for the feed fetcher."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from podsync.podcast.feed_fetcher import FeedFetcher, RssFeedResponse
from podsync.podcast.normalizer import normalize_feed


@pytest.fixture
def fetcher():
    """Provide a FeedFetcher with a short timeout."""
    return FeedFetcher(timeout=5)


class TestParseBytes:
    """Tests for parsing feed documents."""

    def test_parse_channel(self, fetcher, sample_feed):
        """Test channel-level fields."""
        response = fetcher.parse_bytes(sample_feed)

        assert response.title == "Test Podcast"
        assert response.description == "A podcast for testing"
        assert response.last_updated == "Mon, 08 Jan 2024 12:00:00 +0000"

    def test_parse_items(self, fetcher, sample_feed):
        """Test item fields are kept as raw strings."""
        response = fetcher.parse_bytes(sample_feed)

        assert len(response.episodes) == 2

        ep1 = response.episodes[0]
        assert ep1.guid == "episode-1-guid"
        assert ep1.title == "Episode 1: Introduction"
        assert ep1.description == "The first episode of our podcast."
        assert ep1.url == "https://example.com/ep1.mp3"
        assert ep1.type == "audio/mpeg"
        assert ep1.pub_date == "Mon, 01 Jan 2024 12:00:00 +0000"
        assert ep1.duration == "01:30:00"

    def test_item_without_optional_fields(self, fetcher):
        """Test an item with only a title leaves the other fields empty."""
        feed = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Bare</title>
<item><title>Only a title</title></item>
</channel></rss>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        item = response.episodes[0]
        assert item.title == "Only a title"
        assert item.guid is None
        assert item.url is None
        assert item.type is None
        assert item.pub_date is None
        assert item.duration is None

    def test_channel_without_items(self, fetcher):
        """Test a channel with no items yields an empty episode list."""
        feed = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Empty</title></channel></rss>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        assert response.title == "Empty"
        assert response.episodes == []

    def test_description_kept_apart_from_itunes_summary(self, fetcher):
        """Test a leading itunes:summary does not replace the channel description."""
        feed = """<?xml version="1.0"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
<channel><title>Show</title>
<itunes:summary>X</itunes:summary>
<description>Y</description>
<item><guid>e1</guid><title>Ep1</title></item>
</channel></rss>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        assert response.description == "Y"
        assert response.summary == "X"
        assert normalize_feed("http://a/feed.xml", "", response).description == "Y"

    def test_whitespace_description_not_stripped(self, fetcher):
        """Test a whitespace-only description survives, so no summary fallback applies."""
        feed = """<?xml version="1.0"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
<channel><title>Show</title>
<description>   </description>
<itunes:summary>X</itunes:summary>
<item><guid>e1</guid></item>
</channel></rss>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        assert response.description == "   "
        assert normalize_feed("http://a/feed.xml", "", response).description == "   "

    def test_empty_description_falls_back_to_summary(self, fetcher):
        """Test an empty description element yields the itunes summary after normalizing."""
        feed = """<?xml version="1.0"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
<channel><title>Show</title>
<description></description>
<itunes:summary>X</itunes:summary>
<item><guid>e1</guid></item>
</channel></rss>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        assert response.description == ""
        assert normalize_feed("http://a/feed.xml", "", response).description == "X"

    def test_atom_feed_uses_feedparser_fields(self, fetcher):
        """Test feeds without an RSS channel still get a description."""
        feed = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
<title>Atom Show</title><subtitle>About atoms</subtitle>
<entry><id>urn:e1</id><title>Ep1</title></entry>
</feed>"""

        response = fetcher.parse_bytes(feed.encode("utf-8"))

        assert response.title == "Atom Show"
        assert response.description == "About atoms"
        assert response.episodes[0].guid == "urn:e1"

    def test_not_a_feed(self, fetcher):
        """Test content that is not a feed returns None."""
        assert fetcher.parse_bytes(b"") is None


class TestGetFeed:
    """Tests for fetching feeds over HTTP."""

    def test_get_feed_success(self, fetcher, sample_feed):
        """Test a successful download is parsed."""
        with patch.object(
            fetcher, "_fetch_bytes", AsyncMock(return_value=sample_feed)
        ) as mock_fetch:
            response = asyncio.run(fetcher.get_feed("https://example.com/feed.xml"))

        mock_fetch.assert_awaited_once_with("https://example.com/feed.xml")
        assert isinstance(response, RssFeedResponse)
        assert response.title == "Test Podcast"

    def test_get_feed_client_error(self, fetcher):
        """Test a transport error yields None instead of raising."""
        with patch.object(
            fetcher, "_fetch_bytes", AsyncMock(side_effect=aiohttp.ClientError("boom"))
        ):
            response = asyncio.run(fetcher.get_feed("https://example.com/feed.xml"))

        assert response is None

    def test_get_feed_timeout(self, fetcher):
        """Test a timeout yields None."""
        with patch.object(
            fetcher, "_fetch_bytes", AsyncMock(side_effect=asyncio.TimeoutError())
        ):
            response = asyncio.run(fetcher.get_feed("https://example.com/feed.xml"))

        assert response is None

    def test_default_user_agent(self):
        """Test the default user agent is used when none is given."""
        fetcher = FeedFetcher()
        assert fetcher.user_agent.startswith("PodSync/")
        assert fetcher.timeout == FeedFetcher.DEFAULT_TIMEOUT
