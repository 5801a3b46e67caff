"""Rate store interface shared by every database backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

from rate_watch.db import RateTable


class RateStore(ABC):
    """Append-only store of ``(label, value, observed_at)`` records for one table."""

    table: RateTable

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the table/collection and verify connectivity."""

    @abstractmethod
    def append(self, label: str, value: Decimal, *, observed_at: datetime | None = None) -> bool:
        """Insert one record stamped with ``observed_at`` (now by default).

        Storage failures are logged and reported as ``False``; they never raise.
        """

    @abstractmethod
    def most_recent(self, label: str) -> Decimal | None:
        """Return the latest value recorded for ``label`` or ``None`` if there is none.

        Raises :class:`~rate_watch.exceptions.StoreError` when the lookup itself fails.
        """

    def normalize(self, value: Decimal) -> Decimal:
        """Return ``value`` as the backend will store it. Exact backends keep it unchanged."""

        return value

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""

    def __enter__(self) -> "RateStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["RateStore"]
