"""
Pytest configuration and fixtures for podsync tests.

Environment variables read by Config are cleared before any test runs so
results do not depend on the developer's shell or .env file.
"""

import os

import pytest

from podsync.db.factory import create_repository

for _name in (
    "DATABASE_URL",
    "DB_POOL_SIZE",
    "DB_MAX_OVERFLOW",
    "DB_ECHO",
    "FEED_FETCH_TIMEOUT",
    "FEED_USER_AGENT",
    "SYNC_MAX_CONCURRENT",
    "SYNC_INTERVAL_MINUTES",
):
    os.environ.pop(_name, None)


SAMPLE_RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Test Podcast</title>
    <description>A podcast for testing</description>
    <link>https://example.com</link>
    <lastBuildDate>Mon, 08 Jan 2024 12:00:00 +0000</lastBuildDate>

    <item>
      <title>Episode 1: Introduction</title>
      <description>The first episode of our podcast.</description>
      <guid>episode-1-guid</guid>
      <pubDate>Mon, 01 Jan 2024 12:00:00 +0000</pubDate>
      <itunes:duration>01:30:00</itunes:duration>
      <enclosure url="https://example.com/ep1.mp3"
                 length="54000000"
                 type="audio/mpeg"/>
    </item>

    <item>
      <title>Episode 2: Deep Dive</title>
      <description>A deeper look at the topic.</description>
      <guid>episode-2-guid</guid>
      <pubDate>Mon, 08 Jan 2024 12:00:00 +0000</pubDate>
      <itunes:duration>45:30</itunes:duration>
      <enclosure url="https://example.com/ep2.mp3"
                 length="27000000"
                 type="audio/mpeg"/>
    </item>
  </channel>
</rss>"""


@pytest.fixture
def repository(tmp_path):
    """
    Create a temporary SQLite-backed repository for tests.

    Yields a repository using a SQLite file under the temporary path and closes it on teardown.
    """
    db_path = tmp_path / "test.db"
    repo = create_repository(f"sqlite:///{db_path}", create_tables=True)
    yield repo
    repo.close()


@pytest.fixture
def sample_feed():
    """Provide the sample RSS document as bytes."""
    return SAMPLE_RSS_FEED.encode("utf-8")
