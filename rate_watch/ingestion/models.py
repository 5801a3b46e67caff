"""Data models shared across ingestion, storage and pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Mapping


@dataclass(slots=True)
class RateSnapshot:
    """Labelled values produced by one fetch cycle.

    A label maps to ``None`` when the source was reachable but did not contain
    a value for it; partial snapshots are valid.
    """

    values: dict[str, Decimal | None] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Decimal | None]) -> "RateSnapshot":
        return cls(values=dict(values))

    def get(self, label: str) -> Decimal | None:
        return self.values.get(label)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self.values)

    def summary(self) -> dict[str, str | None]:
        """Values rendered as text, ``None`` for labels without a value."""

        return {
            label: None if value is None else str(value) for label, value in self.values.items()
        }

    def observed(self) -> dict[str, Decimal]:
        """Return only the labels that carry a value."""

        return {label: value for label, value in self.values.items() if value is not None}

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


__all__ = ["RateSnapshot"]
