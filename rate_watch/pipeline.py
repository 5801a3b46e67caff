"""Observe, compare, notify and persist tracked rates for one data source."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol, Sequence

from rate_watch.db.base_backend import RateStore
from rate_watch.exceptions import FetchError, NotificationError, StoreError
from rate_watch.ingestion.models import RateSnapshot
from rate_watch.ingestion.strategy import RateFetcher
from rate_watch.notifier import format_rate_message
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)


class Notifier(Protocol):
    def notify(self, message: str) -> None:
        ...  # pragma: no cover - protocol definition


@dataclass(slots=True)
class LabelOutcome:
    """What happened to a single label during one run."""

    label: str
    current: Decimal | None
    previous: Decimal | None = None
    message: str | None = None
    notified: bool = False
    persisted: bool = False
    error: str | None = None

    @property
    def skipped(self) -> bool:
        return self.current is None or self.error is not None


@dataclass(slots=True)
class PipelineResult:
    name: str
    snapshot: RateSnapshot
    outcomes: list[LabelOutcome] = field(default_factory=list)

    def summary(self) -> dict[str, str | None]:
        """Observed values keyed by label, as reported to trigger callers."""

        return self.snapshot.summary()

    def outcome(self, label: str) -> LabelOutcome | None:
        return next((item for item in self.outcomes if item.label == label), None)


class RatePipeline:
    """Run one fetch cycle and process every tracked label independently."""

    def __init__(
        self,
        name: str,
        fetcher: RateFetcher,
        store: RateStore,
        notifier: Notifier,
        *,
        labels: Sequence[str] | None = None,
        subject: str = "{label}",
    ) -> None:
        self.name = name
        self.fetcher = fetcher
        self.store = store
        self.notifier = notifier
        self.labels = tuple(labels) if labels is not None else tuple(fetcher.labels)
        self.subject = subject

    def run(self) -> PipelineResult:
        LOGGER.info("Running %s check", self.name)
        snapshot = self.fetcher.fetch()
        if snapshot is None:
            LOGGER.error("Could not extract %s; skipping this cycle", self.name)
            raise FetchError(f"{self.name} fetch returned no snapshot")

        result = PipelineResult(name=self.name, snapshot=snapshot)
        for label in self.labels:
            result.outcomes.append(self._process_label(label, snapshot.get(label)))
        return result

    def _process_label(self, label: str, current: Decimal | None) -> LabelOutcome:
        outcome = LabelOutcome(label=label, current=current)
        if current is None:
            LOGGER.warning("No %s value observed; skipping", label)
            return outcome
        current = outcome.current = self.store.normalize(current)

        try:
            previous = self.store.most_recent(label)
        except StoreError as exc:
            LOGGER.error("Error fetching previous %s rate: %s", label, exc)
            outcome.error = str(exc)
            return outcome
        outcome.previous = previous

        outcome.message = format_rate_message(
            label, current, previous, subject=self.subject.format(label=label)
        )
        if outcome.message is not None:
            try:
                self.notifier.notify(outcome.message)
            except NotificationError as exc:
                # Leave the baseline untouched so the next cycle announces it again.
                LOGGER.error("Error sending %s notification: %s", label, exc)
                outcome.error = str(exc)
                return outcome
            outcome.notified = True

        if previous is None or current != previous:
            outcome.persisted = self.store.append(label, current)
        else:
            LOGGER.info("%s unchanged at %s", label, current)
        return outcome


__all__ = ["LabelOutcome", "Notifier", "PipelineResult", "RatePipeline"]
