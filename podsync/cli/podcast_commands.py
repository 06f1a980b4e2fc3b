"""CLI commands for podcast subscriptions.

Provides commands for:
- Subscribing to and unsubscribing from feeds
- Showing a feed without subscribing
- Listing subscriptions
- Syncing feeds once or on a timer
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy.exc import IntegrityError

from ..config import Config
from ..db.factory import create_repository_from_config
from ..models import Podcast, SyncResult
from ..podcast.feed_fetcher import FeedFetcher
from ..podcast.feed_sync import FeedSyncService
from ..scheduler import run_scheduler

logger = logging.getLogger(__name__)


def _create_service(repository, config: Config, max_concurrent=None) -> FeedSyncService:
    return FeedSyncService(
        repository=repository,
        fetcher=FeedFetcher(
            timeout=config.FEED_FETCH_TIMEOUT,
            user_agent=config.FEED_USER_AGENT,
        ),
        max_concurrent=max_concurrent or config.SYNC_MAX_CONCURRENT,
    )


def _print_podcast(podcast: Podcast, max_episodes: int = 20):
    print(f"\n{podcast.title}")
    print(f"  Feed: {podcast.feed_url}")
    if podcast.id is not None:
        print(f"  ID: {podcast.id}")
    if podcast.last_updated:
        print(f"  Last updated: {podcast.last_updated}")
    if podcast.description:
        print(f"  {podcast.description[:200]}")
    print(f"  Episodes: {len(podcast.episodes)}")

    for episode in podcast.episodes[:max_episodes]:
        date = episode.release_date.strftime("%Y-%m-%d") if episode.release_date else "----------"
        duration = f" ({episode.duration})" if episode.duration else ""
        print(f"    {date}  {episode.title}{duration}")


def _print_sync_result(result: SyncResult):
    if not result.updates:
        print("No new episodes")
    for info in result.updates:
        print(f"  {info.name}: {info.new_count} new episodes")
    for failure in result.failures:
        print(f"  Failed: {failure.feed_url}: {failure.error}")


def add_podcast(args, config: Config):
    """
    Subscribe to the feed at `args.url`.

    Exits with status 1 if the feed cannot be loaded or the store rejects it.
    """
    repository = create_repository_from_config(config)

    try:
        service = _create_service(repository, config)
        try:
            podcast = asyncio.run(
                service.add_podcast_from_url(args.url, image_url=args.image_url or "")
            )
        except IntegrityError as e:
            logger.error(f"Failed to save podcast {args.url}: {e}")
            print(f"Error: could not save podcast {args.url}: {e.orig}")
            sys.exit(1)

        if podcast is None:
            print(f"Error: could not load feed {args.url}")
            sys.exit(1)

        print(f"\nSubscribed: {podcast.title}")
        print(f"  ID: {podcast.id}")
        print(f"  Episodes: {len(podcast.episodes)}")

    finally:
        repository.close()


def show_podcast(args, config: Config):
    """Print a podcast and its episodes without subscribing."""
    repository = create_repository_from_config(config)

    try:
        service = _create_service(repository, config)
        podcast = asyncio.run(service.get_podcast(args.url))

        if podcast is None:
            print(f"Error: could not load feed {args.url}")
            sys.exit(1)

        _print_podcast(podcast, max_episodes=args.limit)

    finally:
        repository.close()


def remove_podcast(args, config: Config):
    """Unsubscribe from the feed at `args.url`."""
    repository = create_repository_from_config(config)

    try:
        podcast = repository.load_podcast_by_url(args.url)
        if podcast is None:
            print(f"Not subscribed: {args.url}")
            sys.exit(1)

        service = _create_service(repository, config)
        asyncio.run(service.delete(podcast))
        print(f"Unsubscribed: {podcast.title}")

    finally:
        repository.close()


def list_podcasts(args, config: Config):
    """
    Print a table of subscribed podcasts with their stored episode counts.
    """
    repository = create_repository_from_config(config)

    try:
        podcasts = repository.list_subscribed_podcasts()

        if not podcasts:
            print("No podcasts found")
            return

        print(f"\n{'ID':<6}  {'Title':<40}  {'Episodes':<10}  {'Feed'}")
        print("-" * 100)

        for podcast in podcasts:
            episodes = repository.load_episodes(podcast.id)
            print(
                f"{podcast.id:<6}  "
                f"{podcast.title[:40]:<40}  "
                f"{len(episodes):<10}  "
                f"{podcast.feed_url}"
            )

    finally:
        repository.close()


def sync_feeds(args, config: Config):
    """Run one sync pass over all subscriptions."""
    repository = create_repository_from_config(config)

    try:
        service = _create_service(repository, config, max_concurrent=args.concurrent)

        logger.info("Syncing all podcasts")
        result = asyncio.run(service.update_all_with_report())

        print("\nSync complete:")
        _print_sync_result(result)

        if result.failures:
            sys.exit(1)

    finally:
        repository.close()


def watch_feeds(args, config: Config):
    """Sync all subscriptions on an interval until interrupted."""
    interval_seconds = args.interval * 60 if args.interval else None

    runs = asyncio.run(
        run_scheduler(
            config,
            interval_seconds=interval_seconds,
            iterations=args.iterations,
            on_result=_print_sync_result,
        )
    )
    print(f"\nStopped after {runs} sync passes")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Podcast subscription sync CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--env-file",
        help="Path to .env file",
        default=None,
    )
    parser.add_argument(
        "-l",
        "--log-level",
        help="Set log level (DEBUG, INFO, WARNING, ERROR)",
        default="INFO",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Subscribe to a podcast feed",
    )
    add_parser.add_argument("url", help="RSS feed URL")
    add_parser.add_argument(
        "--image-url",
        help="Artwork URL to store with the subscription",
    )

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show a podcast and its episodes",
    )
    show_parser.add_argument("url", help="RSS feed URL")
    show_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of episodes to show",
    )

    # remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Unsubscribe from a podcast feed",
    )
    remove_parser.add_argument("url", help="RSS feed URL")

    # list command
    subparsers.add_parser(
        "list",
        help="List subscribed podcasts",
    )

    # sync command
    sync_parser = subparsers.add_parser(
        "sync",
        help="Check all subscriptions for new episodes",
    )
    sync_parser.add_argument(
        "--concurrent",
        type=int,
        help="Number of feeds to sync at once",
    )

    # watch command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Check for new episodes on an interval",
    )
    watch_parser.add_argument(
        "--interval",
        type=int,
        help="Minutes between sync passes (default: SYNC_INTERVAL_MINUTES)",
    )
    watch_parser.add_argument(
        "--iterations",
        type=int,
        help="Stop after this many sync passes",
    )

    return parser


def main():
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Load configuration
    config = Config(env_file=args.env_file)

    # Route to appropriate command
    commands = {
        "add": add_podcast,
        "show": show_podcast,
        "remove": remove_podcast,
        "list": list_podcasts,
        "sync": sync_feeds,
        "watch": watch_feeds,
    }

    command_func = commands.get(args.command)
    if command_func:
        command_func(args, config)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
