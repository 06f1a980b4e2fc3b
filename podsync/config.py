import os
from typing import Optional

from dotenv import load_dotenv

DEFAULT_USER_AGENT = "PodSync/1.0 (+https://github.com/podsync)"


def _get_int_env(
    name: str,
    default: int,
    min_val: Optional[int] = None,
) -> int:
    """Parse an integer from an environment variable with validation.

    Args:
        name: Environment variable name.
        default: Default value if env var is not set.
        min_val: Minimum allowed value (inclusive), or None for no minimum.

    Returns:
        The parsed and validated integer value.

    Raises:
        ValueError: If the value cannot be parsed as an integer or is out of range.
    """
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid value for {name}: '{raw}' is not a valid integer"
        )

    if min_val is not None and value < min_val:
        raise ValueError(
            f"Invalid value for {name}: {value} must be >= {min_val}"
        )

    return value


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets the database, feed fetching and sync scheduling attributes using environment values with sensible defaults.

        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from.

        Raises:
            ValueError: If an integer setting is malformed or out of range.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Database configuration
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./podsync.db")
        self.DB_POOL_SIZE = _get_int_env("DB_POOL_SIZE", 5, min_val=1)
        self.DB_MAX_OVERFLOW = _get_int_env("DB_MAX_OVERFLOW", 10, min_val=0)
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

        # Feed fetching
        self.FEED_FETCH_TIMEOUT = _get_int_env("FEED_FETCH_TIMEOUT", 30, min_val=1)
        self.FEED_USER_AGENT = os.getenv("FEED_USER_AGENT", DEFAULT_USER_AGENT)

        # Sync configuration
        # 1 keeps the batch strictly sequential
        self.SYNC_MAX_CONCURRENT = _get_int_env("SYNC_MAX_CONCURRENT", 1, min_val=1)
        self.SYNC_INTERVAL_MINUTES = _get_int_env("SYNC_INTERVAL_MINUTES", 60, min_val=1)

    @property
    def sync_interval_seconds(self) -> int:
        """Interval between scheduled sync passes, in seconds."""
        return self.SYNC_INTERVAL_MINUTES * 60
