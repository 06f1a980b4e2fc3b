"""Feed synchronization service for podcast subscriptions.

Resolves feed URLs to podcasts, persists subscriptions, and detects
episodes that appeared in a feed since the last sync.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from ..db.repository import PodcastRepositoryInterface
from ..models import (
    Episode,
    Podcast,
    PodcastUpdateInfo,
    SyncFailure,
    SyncResult,
)
from .feed_fetcher import FeedFetcher
from .normalizer import normalize_feed

logger = logging.getLogger(__name__)

_CANCELLED = object()


def find_new_episodes(
    local_episodes: List[Episode], remote_episodes: List[Episode]
) -> List[Episode]:
    """
    Return the remote episodes whose guid matches no locally stored episode.

    Matching is by guid only, so edits to an already stored episode are ignored.
    Repeated guids within the remote list count once, which also means that of
    several guid-less episodes only the first is ever reported as new.

    Parameters:
        local_episodes (List[Episode]): Episodes already stored for the podcast.
        remote_episodes (List[Episode]): Episodes from the freshly fetched feed, in feed order.

    Returns:
        List[Episode]: New episodes in feed order.
    """
    known_guids = {episode.guid for episode in local_episodes}
    new_episodes = []

    for episode in remote_episodes:
        if episode.guid in known_guids:
            continue
        known_guids.add(episode.guid)
        new_episodes.append(episode)

    return new_episodes


class FeedSyncService:
    """Service for synchronizing podcast feeds with the database.

    All public methods are coroutines. Repository calls run in a worker
    thread through `asyncio.to_thread`, feed downloads run on the event loop.
    A service instance is meant to be driven from one event loop at a time.

    Example:
        sync_service = FeedSyncService(repository)
        podcast = await sync_service.get_podcast("https://example.com/feed.xml")
        if podcast and podcast.id is None:
            await sync_service.save(podcast)
        for info in await sync_service.update_all():
            print(f"{info.name}: {info.new_count} new episodes")
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        fetcher: Optional[FeedFetcher] = None,
        max_concurrent: int = 1,
    ):
        """
        Create a FeedSyncService backed by the given repository.

        Parameters:
            repository (PodcastRepositoryInterface): Store for podcasts and episodes.
            fetcher (Optional[FeedFetcher]): Feed fetcher; a default `FeedFetcher` is created when omitted.
            max_concurrent (int): Number of podcasts a batch update works on at once. 1 keeps it sequential.
        """
        self.repository = repository
        self.fetcher = fetcher or FeedFetcher()
        self.max_concurrent = max(1, max_concurrent)
        self._podcast_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # --- Single podcast ---

    async def get_podcast(self, feed_url: str) -> Optional[Podcast]:
        """
        Resolve a feed URL to a podcast.

        A podcast already in the store is returned with its stored episodes and
        no network request is made, even if it has no episodes. Otherwise the
        feed is fetched and normalized into a transient podcast with no id and
        an empty image URL.

        Returns:
            Podcast, or None if the feed could not be loaded.
        """
        podcast_local = await asyncio.to_thread(
            self.repository.load_podcast_by_url, feed_url
        )
        if podcast_local is not None and podcast_local.id is not None:
            podcast_local.episodes = await asyncio.to_thread(
                self.repository.load_episodes, podcast_local.id
            )
            return podcast_local

        response = await self.fetcher.get_feed(feed_url)
        if response is None:
            logger.info(f"Could not load feed: {feed_url}")
            return None

        return normalize_feed(feed_url, "", response)

    async def save(self, podcast: Podcast) -> int:
        """
        Persist a podcast and every episode attached to it.

        The podcast row and its episodes are written in one transaction, so
        on failure nothing is stored. Episodes sharing a guid are collapsed to
        the first one, the same rule a sync pass applies, and the podcast's
        episode list is replaced by what was stored. The store-assigned id is
        written back onto the podcast and stamped on each episode.

        Returns:
            int: The podcast id assigned by the store.

        Raises:
            ValueError: If the podcast already has an id.
            IntegrityError: If the feed URL is already stored or a row is rejected.
        """
        if podcast.id is not None:
            raise ValueError(f"Podcast already saved with id {podcast.id}: {podcast.feed_url}")

        episodes = find_new_episodes([], podcast.episodes)
        if len(episodes) < len(podcast.episodes):
            logger.info(
                f"Dropped {len(podcast.episodes) - len(episodes)} episodes with repeated guids "
                f"from {podcast.feed_url}"
            )

        podcast_id = await asyncio.to_thread(
            self.repository.insert_podcast_with_episodes, podcast, episodes
        )
        podcast.id = podcast_id
        podcast.episodes = episodes
        for episode in episodes:
            episode.podcast_id = podcast_id

        logger.info(
            f"Saved podcast '{podcast.title}' ({podcast_id}) with {len(podcast.episodes)} episodes"
        )
        return podcast_id

    async def delete(self, podcast: Podcast) -> bool:
        """
        Remove a podcast and its episodes from the store.

        Returns:
            bool: `True` if the podcast was stored and has been removed.
        """
        deleted = await asyncio.to_thread(self.repository.delete_podcast, podcast)
        if not deleted:
            logger.info(f"Podcast not subscribed: {podcast.feed_url}")
        return deleted

    async def add_podcast_from_url(
        self, feed_url: str, image_url: str = ""
    ) -> Optional[Podcast]:
        """
        Subscribe to a feed: resolve it and save it unless it is already stored.

        Parameters:
            feed_url (str): URL of the podcast feed.
            image_url (str): Artwork URL to store with a new subscription.

        Returns:
            The stored podcast, or None if the feed could not be loaded.
        """
        podcast = await self.get_podcast(feed_url)
        if podcast is None:
            return None

        if podcast.id is None:
            if image_url:
                podcast.image_url = image_url
            await self.save(podcast)
        else:
            logger.info(f"Podcast already subscribed: {podcast.title} ({podcast.id})")

        return podcast

    async def list_podcasts(self) -> List[Podcast]:
        """Return a snapshot of the subscribed podcasts."""
        return await asyncio.to_thread(self.repository.list_subscribed_podcasts)

    # --- Batch update ---

    async def update_all(
        self, cancel_event: Optional[asyncio.Event] = None
    ) -> List[PodcastUpdateInfo]:
        """
        Fetch every subscribed podcast and store the episodes that are new.

        Returns:
            List[PodcastUpdateInfo]: One entry per podcast that gained episodes, in subscription order.
        """
        result = await self.update_all_with_report(cancel_event=cancel_event)
        return result.updates

    async def update_all_with_report(
        self, cancel_event: Optional[asyncio.Event] = None
    ) -> SyncResult:
        """
        Run one sync pass over the subscribed podcasts and report the outcome.

        The subscription list is read once at the start. A podcast whose feed
        cannot be fetched counts as having no new episodes. A podcast whose new
        episodes fail to persist is recorded in `failures` and the pass moves on.

        Parameters:
            cancel_event (Optional[asyncio.Event]): When set, podcasts not yet started are skipped. A podcast already being synced always finishes.

        Returns:
            SyncResult: Updates in subscription order, per-podcast failures, and whether the pass was cancelled.
        """
        podcasts = await asyncio.to_thread(self.repository.list_subscribed_podcasts)
        logger.info(f"Updating {len(podcasts)} podcasts")

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def sync_with_semaphore(podcast: Podcast):
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return _CANCELLED
                try:
                    return await self._sync_podcast(podcast)
                except Exception as e:
                    logger.error(f"Failed to update podcast {podcast.title}: {e}")
                    return SyncFailure(feed_url=podcast.feed_url, error=str(e))

        outcomes = await asyncio.gather(
            *(sync_with_semaphore(podcast) for podcast in podcasts)
        )

        result = SyncResult()
        for outcome in outcomes:
            if outcome is _CANCELLED:
                result.cancelled = True
            elif isinstance(outcome, SyncFailure):
                result.failures.append(outcome)
            elif outcome is not None:
                result.updates.append(outcome)

        logger.info(
            f"Update complete: {len(result.updates)} podcasts updated, "
            f"{len(result.failures)} failed, "
            f"{result.new_episodes} new episodes"
            + (" (cancelled)" if result.cancelled else "")
        )
        return result

    async def _sync_podcast(self, podcast: Podcast) -> Optional[PodcastUpdateInfo]:
        if podcast.id is None:
            return None

        async with self._podcast_lock(podcast.feed_url):
            new_episodes = await self._get_new_episodes(podcast)
            if not new_episodes:
                return None

            for episode in new_episodes:
                episode.podcast_id = podcast.id
            await asyncio.to_thread(
                self.repository.insert_episodes, podcast.id, new_episodes
            )

        logger.info(f"Found {len(new_episodes)} new episodes for '{podcast.title}'")
        return PodcastUpdateInfo(
            feed_url=podcast.feed_url,
            name=podcast.title,
            new_count=len(new_episodes),
        )

    @asynccontextmanager
    async def _podcast_lock(self, feed_url: str):
        """Hold the feed's lock; it is discarded once no sync holds or awaits it."""
        lock = self._podcast_locks.setdefault(feed_url, asyncio.Lock())
        self._lock_users[feed_url] = self._lock_users.get(feed_url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[feed_url] -= 1
            if self._lock_users[feed_url] == 0:
                del self._lock_users[feed_url]
                del self._podcast_locks[feed_url]

    async def _get_new_episodes(self, local_podcast: Podcast) -> List[Episode]:
        response = await self.fetcher.get_feed(local_podcast.feed_url)
        if response is None:
            return []

        # Keep the stored artwork instead of the feed's
        remote_podcast = normalize_feed(
            local_podcast.feed_url, local_podcast.image_url, response
        )
        if remote_podcast is None:
            return []

        local_episodes = await asyncio.to_thread(
            self.repository.load_episodes, local_podcast.id
        )
        return find_new_episodes(local_episodes, remote_podcast.episodes)
