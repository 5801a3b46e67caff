"""Exception hierarchy shared by fetchers, stores and notifiers."""

from __future__ import annotations


class RateWatchError(Exception):
    """Base class for every error raised by rate_watch."""


class FetchError(RateWatchError):
    """The source data for a cycle could not be obtained or parsed."""


class StoreError(RateWatchError):
    """The rate store could not be read from or written to."""


class NotificationError(RateWatchError):
    """A webhook message could not be delivered."""


class ConfigurationError(RateWatchError):
    """Required configuration (webhook URL, DSN, ...) is missing or invalid."""


__all__ = [
    "ConfigurationError",
    "FetchError",
    "NotificationError",
    "RateWatchError",
    "StoreError",
]
