"""Rate store backends and the table layout they share."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

__all__ = [
    "DEFAULT_SQLITE_DB_PATH",
    "EXCHANGE_RATES",
    "RateTable",
    "UNIT_TRUST_RATES",
    "default_sqlite_path",
]

# Resolved against the working directory so that cron jobs and the web
# process started from the same checkout share one database file.
DEFAULT_SQLITE_DB_PATH: Final[Path] = Path("rate_watch.db")


@dataclass(frozen=True, slots=True)
class RateTable:
    """Names the table (or collection) of one pipeline family and its label column."""

    name: str
    label_column: str


EXCHANGE_RATES: Final[RateTable] = RateTable(name="exchange_rates", label_column="currency")
UNIT_TRUST_RATES: Final[RateTable] = RateTable(name="cal_unit_trust_rates", label_column="type")


def default_sqlite_path() -> Path:
    """Return the absolute path of the default SQLite database file."""

    return DEFAULT_SQLITE_DB_PATH.resolve()
