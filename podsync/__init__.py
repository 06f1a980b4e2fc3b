"""Podcast subscription sync engine.

Resolves feed URLs into podcasts, keeps subscriptions in a local database,
and discovers new episodes on demand or on a timer.
"""

__version__ = "0.1.0"
