"""Format rate movement messages and deliver them to a chat webhook."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

import requests

from rate_watch.exceptions import NotificationError
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)

UP_MARKER = "\N{LARGE GREEN CIRCLE}"
DOWN_MARKER = "\N{LARGE RED CIRCLE}"
_CENTS = Decimal("0.01")


def format_rate_message(
    label: str,
    current: Decimal,
    previous: Decimal | None,
    *,
    subject: str | None = None,
) -> str | None:
    """Describe how ``current`` moved relative to ``previous``.

    ``subject`` is the phrase that leads the up/down messages (``"USD rate"``
    for currencies, the bare fund code for unit trusts). Returns ``None`` when
    the value is unchanged, in which case nothing should be sent.
    """

    subject = subject or label
    if previous is None:
        return f"{label} rate {current}"
    if current > previous:
        return f"{subject} has gone up: {current} {UP_MARKER} (+{_two_places(current - previous)})"
    if current < previous:
        return (
            f"{subject} has gone down: {current} {DOWN_MARKER} "
            f"(-{_two_places(previous - current)})"
        )
    return None


def _two_places(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


class WebhookNotifier:
    """Post plain-text messages to a Discord-compatible webhook."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not url:
            raise ValueError("A webhook URL is required")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def notify(self, message: str) -> None:
        try:
            response = self.session.post(
                self.url,
                json={"content": message},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationError(f"Failed to deliver webhook message: {exc}") from exc
        LOGGER.info("Sent webhook message: %s", message)


__all__ = ["DOWN_MARKER", "UP_MARKER", "WebhookNotifier", "format_rate_message"]
