"""Repository construction from a database URL or a Config."""

import logging
import os
from typing import Optional

from .repository import (
    PodcastRepositoryInterface,
    SQLAlchemyPodcastRepository,
    masked_url,
)

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./podsync.db"


def create_repository(
    database_url: Optional[str] = None,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
    create_tables: bool = True,
) -> PodcastRepositoryInterface:
    """
    Open the podcast store at `database_url`.

    Falls back to the `DATABASE_URL` environment variable and then to a local
    SQLite file. Missing tables are created unless `create_tables` is false,
    in which case the schema is expected to come from the Alembic migrations.
    Pool settings only matter for server databases.
    """
    database_url = database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
    logger.info(f"Opening podcast store: {masked_url(database_url)}")

    return SQLAlchemyPodcastRepository(
        database_url=database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=echo,
        create_tables=create_tables,
    )


def create_repository_from_config(config) -> PodcastRepositoryInterface:
    """Open the podcast store described by a `Config`."""
    return create_repository(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        echo=config.DB_ECHO,
    )
