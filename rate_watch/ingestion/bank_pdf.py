"""Download the HSBC foreign exchange tariff PDF and extract tracked rates."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from io import BytesIO
from typing import Iterable, Sequence

import requests
from pypdf import PdfReader
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from rate_watch.exceptions import FetchError
from rate_watch.ingestion.models import RateSnapshot
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)

HSBC_FX_PDF_URL = (
    "https://www.hsbc.lk/content/dam/hsbc/lk/documents/tariffs/foreign-exchange-rates.pdf"
)
EXCHANGE_RATE_LABELS: tuple[str, ...] = ("USD", "SGD")


class BankPDFParser:
    """Convert the bank's tariff PDF into a :class:`RateSnapshot`."""

    _RATE_TEMPLATE = r"{label}\s+(\d+\.\d{{2}})"

    def parse(self, payload: bytes, labels: Sequence[str]) -> RateSnapshot:
        return self.extract_rates(self.extract_text(payload), labels)

    def extract_text(self, payload: bytes) -> str:
        try:
            reader = PdfReader(BytesIO(payload))
            return "\n".join(page.extract_text() or "" for page in reader.pages)
        except Exception as exc:
            raise FetchError(f"Unable to read exchange rate PDF: {exc}") from exc

    def extract_rates(self, text: str, labels: Iterable[str]) -> RateSnapshot:
        """Take the first ``<LABEL> <digits>.<2 digits>`` match for every label."""

        values: dict[str, Decimal | None] = {}
        for label in labels:
            pattern = re.compile(self._RATE_TEMPLATE.format(label=re.escape(label)))
            match = pattern.search(text)
            if match is None:
                LOGGER.warning("No %s rate found in exchange rate PDF", label)
                values[label] = None
                continue
            try:
                values[label] = Decimal(match.group(1))
            except InvalidOperation:  # pragma: no cover - the pattern only admits decimals
                values[label] = None
        return RateSnapshot(values=values)


class BankPDFFetcher:
    """Fetch the latest tariff PDF over HTTP and parse the tracked labels."""

    def __init__(
        self,
        url: str = HSBC_FX_PDF_URL,
        *,
        labels: Sequence[str] = EXCHANGE_RATE_LABELS,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        parser: BankPDFParser | None = None,
    ) -> None:
        self.url = url
        self.labels = tuple(labels)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", "rate-watch/1.0")
        self.parser = parser or BankPDFParser()

    def fetch(self) -> RateSnapshot:
        payload = self.download()
        snapshot = self.parser.parse(payload, self.labels)
        LOGGER.info("Extracted exchange rates %s", snapshot.observed())
        return snapshot

    def download(self) -> bytes:
        try:
            return self._download_with_retries()
        except requests.RequestException as exc:
            raise FetchError(f"Failed to download {self.url}: {exc}") from exc

    @retry(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _download_with_retries(self) -> bytes:
        LOGGER.info("Downloading exchange rate PDF from %s", self.url)
        response = self.session.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        return response.content


__all__ = ["BankPDFFetcher", "BankPDFParser", "EXCHANGE_RATE_LABELS", "HSBC_FX_PDF_URL"]
