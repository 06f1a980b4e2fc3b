"""Repository pattern implementation for podcast data persistence.

Provides an abstract interface and SQLAlchemy implementation for database operations.
Supports both SQLite (local development) and PostgreSQL.

The repository hands out detached domain objects (`podsync.models`),
never ORM rows, so callers can hold them across sessions and threads.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy import create_engine, event, make_url, select
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, sessionmaker

from ..models import Episode, Podcast
from .models import Base, EpisodeRow, PodcastRow

logger = logging.getLogger(__name__)


class StoreEvent(str, Enum):
    """Change notifications emitted after a committed write."""

    PODCAST_INSERTED = "podcast_inserted"
    EPISODES_INSERTED = "episodes_inserted"
    PODCAST_DELETED = "podcast_deleted"


StoreListener = Callable[[StoreEvent, int], None]


class PodcastRepositoryInterface(ABC):
    """Abstract interface for podcast data persistence.

    Reads return snapshots. Observers that need to refresh on change register
    a listener instead of holding a live query.
    """

    def __init__(self):
        self._listeners: List[StoreListener] = []

    # --- Change notification ---

    def add_listener(self, listener: StoreListener) -> None:
        """
        Register a callback invoked as `listener(event, podcast_id)` after each committed write.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        """Unregister a previously added listener. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, store_event: StoreEvent, podcast_id: int) -> None:
        for listener in list(self._listeners):
            try:
                listener(store_event, podcast_id)
            except Exception:
                logger.exception(f"Store listener failed for {store_event.value}")

    # --- Podcast Operations ---

    @abstractmethod
    def load_podcast_by_url(self, feed_url: str) -> Optional[Podcast]:
        """
        Retrieve the podcast stored under the given feed URL.

        Returns:
            The matching `Podcast` without episodes, or `None` if no podcast uses that URL.
        """
        pass

    @abstractmethod
    def load_podcast(self, podcast_id: int) -> Optional[Podcast]:
        """
        Retrieve a podcast by its identifier.

        Returns:
            The matching `Podcast` without episodes, or `None`.
        """
        pass

    @abstractmethod
    def list_subscribed_podcasts(self) -> List[Podcast]:
        """
        Return a snapshot of all subscribed podcasts in insertion order.

        Returns:
            List[Podcast]: Podcasts without episodes attached.
        """
        pass

    @abstractmethod
    def insert_podcast(self, podcast: Podcast) -> int:
        """
        Persist a new podcast row. Attached episodes are not written.

        Parameters:
            podcast (Podcast): Podcast to insert; its `id` is ignored.

        Returns:
            int: The identifier assigned by the database.

        Raises:
            IntegrityError: If a podcast with the same feed URL already exists.
        """
        pass

    @abstractmethod
    def insert_podcast_with_episodes(
        self, podcast: Podcast, episodes: List[Episode]
    ) -> int:
        """
        Persist a new podcast together with its episodes in a single transaction.

        If any row is rejected nothing is written, so a failed subscription
        never leaves an empty podcast behind.

        Returns:
            int: The identifier assigned to the podcast.

        Raises:
            IntegrityError: On a duplicate feed URL or a duplicate (podcast_id, guid) pair.
        """
        pass

    @abstractmethod
    def delete_podcast(self, podcast: Podcast) -> bool:
        """
        Remove a podcast and, by cascade, all of its episodes.

        The podcast is matched by `id` when set, otherwise by `feed_url`.

        Returns:
            bool: `True` if a podcast was found and deleted, `False` otherwise.
        """
        pass

    # --- Episode Operations ---

    @abstractmethod
    def load_episodes(self, podcast_id: int) -> List[Episode]:
        """
        Return all stored episodes for a podcast in insertion order.
        """
        pass

    @abstractmethod
    def insert_episode(self, episode: Episode) -> None:
        """
        Persist a single episode. `episode.podcast_id` must be set.

        Raises:
            ValueError: If the episode has no podcast id.
            IntegrityError: If the (podcast_id, guid) pair already exists.
        """
        pass

    @abstractmethod
    def insert_episodes(self, podcast_id: int, episodes: List[Episode]) -> None:
        """
        Persist several episodes for one podcast in a single transaction.

        Either every episode is written or none is.

        Raises:
            IntegrityError: If any (podcast_id, guid) pair already exists.
        """
        pass

    # --- Connection Management ---

    @abstractmethod
    def close(self) -> None:
        """Release database connections and resources."""
        pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def masked_url(database_url: str) -> str:
    """Render a database URL for log output with the password hidden."""
    try:
        return make_url(database_url).render_as_string(hide_password=True)
    except ArgumentError:
        return database_url


def _to_podcast_row(podcast: Podcast) -> PodcastRow:
    return PodcastRow(
        feed_url=podcast.feed_url,
        title=podcast.title,
        description=podcast.description,
        image_url=podcast.image_url,
        last_updated=podcast.last_updated,
        is_subscribed=podcast.is_subscribed,
    )


def _to_podcast(row: PodcastRow) -> Podcast:
    return Podcast(
        id=row.id,
        feed_url=row.feed_url,
        title=row.title,
        description=row.description,
        image_url=row.image_url,
        last_updated=row.last_updated,
        is_subscribed=row.is_subscribed,
    )


def _to_episode(row: EpisodeRow) -> Episode:
    return Episode(
        guid=row.guid,
        podcast_id=row.podcast_id,
        title=row.title,
        description=row.description,
        media_url=row.media_url,
        media_type=row.media_type,
        release_date=row.release_date,
        duration=row.duration,
    )


def _to_episode_row(podcast_id: int, episode: Episode) -> EpisodeRow:
    return EpisodeRow(
        podcast_id=podcast_id,
        guid=episode.guid,
        title=episode.title,
        description=episode.description,
        media_url=episode.media_url,
        media_type=episode.media_type,
        release_date=episode.release_date,
        duration=episode.duration,
    )


class SQLAlchemyPodcastRepository(PodcastRepositoryInterface):
    """SQLAlchemy-based implementation of the podcast repository.

    Supports SQLite for local development and PostgreSQL for production.
    Each call runs in its own session, so instances may be shared across
    threads.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        create_tables: bool = False,
    ):
        """
        Initialize the repository and configure its SQLAlchemy engine and session factory.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            pool_size (int): Connection pool size for non-SQLite databases.
            max_overflow (int): Maximum overflow connections for non-SQLite databases.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            create_tables (bool): If true, create missing tables on startup instead of relying on migrations.
        """
        super().__init__()
        self.database_url = database_url

        # SQLite doesn't support connection pooling
        if database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                database_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                echo=echo,
            )

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create_tables:
            Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized: {masked_url(database_url)}")

    def _get_session(self) -> Session:
        return self.SessionLocal()

    # --- Podcast Operations ---

    def load_podcast_by_url(self, feed_url: str) -> Optional[Podcast]:
        with self._get_session() as session:
            stmt = select(PodcastRow).where(PodcastRow.feed_url == feed_url)
            row = session.scalar(stmt)
            return _to_podcast(row) if row else None

    def load_podcast(self, podcast_id: int) -> Optional[Podcast]:
        with self._get_session() as session:
            row = session.get(PodcastRow, podcast_id)
            return _to_podcast(row) if row else None

    def list_subscribed_podcasts(self) -> List[Podcast]:
        with self._get_session() as session:
            stmt = (
                select(PodcastRow)
                .where(PodcastRow.is_subscribed.is_(True))
                .order_by(PodcastRow.id)
            )
            return [_to_podcast(row) for row in session.scalars(stmt).all()]

    def insert_podcast(self, podcast: Podcast) -> int:
        with self._get_session() as session:
            row = _to_podcast_row(podcast)
            session.add(row)
            session.commit()
            podcast_id = row.id

        logger.info(f"Created podcast: {podcast.title} ({podcast_id})")
        self._notify(StoreEvent.PODCAST_INSERTED, podcast_id)
        return podcast_id

    def insert_podcast_with_episodes(
        self, podcast: Podcast, episodes: List[Episode]
    ) -> int:
        with self._get_session() as session:
            row = _to_podcast_row(podcast)
            session.add(row)
            # Flush to get the id for the episode rows; commit happens once below
            session.flush()
            podcast_id = row.id
            session.add_all([_to_episode_row(podcast_id, episode) for episode in episodes])
            session.commit()

        logger.info(
            f"Created podcast: {podcast.title} ({podcast_id}) with {len(episodes)} episodes"
        )
        self._notify(StoreEvent.PODCAST_INSERTED, podcast_id)
        if episodes:
            self._notify(StoreEvent.EPISODES_INSERTED, podcast_id)
        return podcast_id

    def delete_podcast(self, podcast: Podcast) -> bool:
        with self._get_session() as session:
            if podcast.id is not None:
                row = session.get(PodcastRow, podcast.id)
            else:
                row = session.scalar(
                    select(PodcastRow).where(PodcastRow.feed_url == podcast.feed_url)
                )
            if not row:
                return False

            podcast_id = row.id
            session.delete(row)
            session.commit()

        logger.info(f"Deleted podcast: {podcast.title} ({podcast_id})")
        self._notify(StoreEvent.PODCAST_DELETED, podcast_id)
        return True

    # --- Episode Operations ---

    def load_episodes(self, podcast_id: int) -> List[Episode]:
        with self._get_session() as session:
            stmt = (
                select(EpisodeRow)
                .where(EpisodeRow.podcast_id == podcast_id)
                .order_by(EpisodeRow.id)
            )
            return [_to_episode(row) for row in session.scalars(stmt).all()]

    def insert_episode(self, episode: Episode) -> None:
        if episode.podcast_id is None:
            raise ValueError(f"Episode {episode.guid!r} has no podcast id")
        self.insert_episodes(episode.podcast_id, [episode])

    def insert_episodes(self, podcast_id: int, episodes: List[Episode]) -> None:
        if not episodes:
            return

        with self._get_session() as session:
            session.add_all([_to_episode_row(podcast_id, episode) for episode in episodes])
            session.commit()

        logger.debug(f"Inserted {len(episodes)} episodes for podcast {podcast_id}")
        self._notify(StoreEvent.EPISODES_INSERTED, podcast_id)

    # --- Connection Management ---

    def close(self) -> None:
        """
        Dispose the SQLAlchemy engine and release database connections and resources.
        """
        self.engine.dispose()
        logger.info("Database connection closed")
