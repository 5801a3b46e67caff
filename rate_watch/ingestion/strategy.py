"""Abstractions for pluggable rate fetchers."""

from __future__ import annotations

from typing import Protocol

from rate_watch.ingestion.models import RateSnapshot


class RateFetcher(Protocol):
    """Contract for fetching one snapshot of tracked rates.

    Implementations either raise :class:`~rate_watch.exceptions.FetchError` or
    return ``None`` when the source could not be obtained for this cycle.
    """

    labels: tuple[str, ...]

    def fetch(self) -> RateSnapshot | None:
        ...  # pragma: no cover - protocol definition


__all__ = ["RateFetcher"]
