"""Database module for podcast data persistence.

Provides:
- SQLAlchemy ORM models (PodcastRow, EpisodeRow)
- Repository interface and implementation
- Factory functions for creating repositories
"""

from .factory import create_repository, create_repository_from_config
from .models import Base, EpisodeRow, PodcastRow
from .repository import (
    PodcastRepositoryInterface,
    SQLAlchemyPodcastRepository,
    StoreEvent,
)

__all__ = [
    "Base",
    "PodcastRow",
    "EpisodeRow",
    "PodcastRepositoryInterface",
    "SQLAlchemyPodcastRepository",
    "StoreEvent",
    "create_repository",
    "create_repository_from_config",
]
