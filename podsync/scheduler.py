"""Periodic episode update scheduler.

Runs a sync pass over all subscriptions immediately and then once per
interval until stopped.
"""

import asyncio
import logging
import signal
from typing import Callable, Optional

from .config import Config
from .db.factory import create_repository_from_config
from .models import SyncResult
from .podcast.feed_fetcher import FeedFetcher
from .podcast.feed_sync import FeedSyncService

logger = logging.getLogger(__name__)


async def run_periodic_sync(
    service: FeedSyncService,
    interval_seconds: float,
    stop_event: Optional[asyncio.Event] = None,
    iterations: Optional[int] = None,
    on_result: Optional[Callable[[SyncResult], None]] = None,
) -> int:
    """Run sync passes on a fixed interval.

    Args:
        service: Sync service to drive.
        interval_seconds: Pause between the end of one pass and the start of the next.
        stop_event: Setting it stops the loop; a pass in progress skips podcasts it has not started.
        iterations: Stop after this many passes. None runs until stopped.
        on_result: Called with each pass's SyncResult.

    Returns:
        Number of passes run.
    """
    if stop_event is None:
        stop_event = asyncio.Event()

    runs = 0
    while not stop_event.is_set():
        try:
            result = await service.update_all_with_report(cancel_event=stop_event)
            if on_result:
                on_result(result)
        except Exception:
            logger.exception("Sync pass failed")

        runs += 1
        if iterations is not None and runs >= iterations:
            break

        logger.debug(f"Next sync in {interval_seconds}s")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info(f"Scheduler stopped after {runs} sync passes")
    return runs


async def run_scheduler(
    config: Config,
    interval_seconds: Optional[float] = None,
    iterations: Optional[int] = None,
    on_result: Optional[Callable[[SyncResult], None]] = None,
) -> int:
    """Build a sync service from configuration and run it until interrupted.

    SIGINT and SIGTERM stop the loop gracefully.
    """
    if interval_seconds is None:
        interval_seconds = config.sync_interval_seconds

    repository = create_repository_from_config(config)
    service = FeedSyncService(
        repository=repository,
        fetcher=FeedFetcher(
            timeout=config.FEED_FETCH_TIMEOUT,
            user_agent=config.FEED_USER_AGENT,
        ),
        max_concurrent=config.SYNC_MAX_CONCURRENT,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Not supported on Windows event loops
            pass

    logger.info(f"Scheduler starting, syncing every {interval_seconds}s")
    try:
        return await run_periodic_sync(
            service,
            interval_seconds,
            stop_event=stop_event,
            iterations=iterations,
            on_result=on_result,
        )
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass
        repository.close()
