"""Scrape unit trust fund prices from the CAL calculator pages."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Callable, Mapping

from bs4 import BeautifulSoup
from selenium import webdriver
from selenium.common.exceptions import TimeoutException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.support.ui import WebDriverWait

from rate_watch.ingestion.models import RateSnapshot
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)

CAL_UNIT_TRUST_URLS: dict[str, str] = {
    "QEF": "https://cal.lk/unittrust/calculator/?fund=QEF",
    "BF": "https://cal.lk/unittrust/calculator/?fund=BF",
}
LATEST_PRICE_SELECTOR = ".latest-price span"
PRICE_PATTERN = re.compile(r"(\d+\.\d+)")


def parse_fund_price(html: str, selector: str = LATEST_PRICE_SELECTOR) -> Decimal | None:
    """Return the first decimal in the element matched by ``selector``.

    A missing element, empty text or text without a decimal yields ``None``.
    """

    soup = BeautifulSoup(html, "html.parser")
    element = soup.select_one(selector)
    if element is None:
        return None
    price_text = element.get_text().strip()
    match = PRICE_PATTERN.search(price_text)
    if match is None:
        return None
    return Decimal(match.group(1))


class CalculatorBrowser:
    """Disposable headless Chrome session used to render calculator pages."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        settle_timeout: float = 5.0,
        headless: bool = True,
        binary_location: str | None = None,
        selector: str = LATEST_PRICE_SELECTOR,
        driver: webdriver.Chrome | None = None,
    ) -> None:
        self.timeout = timeout
        self.settle_timeout = settle_timeout
        self.selector = selector
        self._closed = False
        if driver is None:
            LOGGER.info("Launching headless browser")
            options = Options()
            if headless:
                options.add_argument("--headless=new")
            options.add_argument("--disable-gpu")
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-dev-shm-usage")
            options.add_argument("--single-process")
            if binary_location:
                options.binary_location = binary_location
            self.driver = webdriver.Chrome(options=options)
        else:
            self.driver = driver
        try:
            self.driver.set_page_load_timeout(timeout)
        except Exception:
            self.close()
            raise

    def open(self, url: str) -> str:
        """Navigate to ``url`` and return the rendered page source."""

        self.driver.get(url)
        wait = WebDriverWait(self.driver, self.timeout)
        wait.until(lambda driver: driver.execute_script("return document.readyState") == "complete")
        self._wait_for_selector()
        return self.driver.page_source

    def _wait_for_selector(self) -> None:
        # Prices are rendered client-side; an absent element after the settle
        # window is reported by the parser rather than as a failure.
        wait = WebDriverWait(self.driver, self.settle_timeout)
        try:
            wait.until(lambda driver: driver.find_elements(By.CSS_SELECTOR, self.selector))
        except TimeoutException:
            LOGGER.debug("Selector %s did not appear within %ss", self.selector, self.settle_timeout)

    def close(self) -> None:
        """Quit the browser once; later calls are no-ops."""

        if self._closed:
            return
        self._closed = True
        self.driver.quit()
        LOGGER.info("Browser closed")

    def __enter__(self) -> "CalculatorBrowser":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class UnitTrustFetcher:
    """Fetch the latest unit price of every configured fund in one browser session."""

    def __init__(
        self,
        urls: Mapping[str, str] | None = None,
        *,
        selector: str = LATEST_PRICE_SELECTOR,
        timeout: float = 30.0,
        headless: bool = True,
        binary_location: str | None = None,
        browser_factory: Callable[..., CalculatorBrowser] = CalculatorBrowser,
    ) -> None:
        self.urls = dict(urls or CAL_UNIT_TRUST_URLS)
        self.labels = tuple(self.urls)
        self.selector = selector
        self.timeout = timeout
        self.headless = headless
        self.binary_location = binary_location
        self._browser_factory = browser_factory

    def fetch(self) -> RateSnapshot | None:
        """Return a snapshot, or ``None`` when the browser failed at any point."""

        try:
            with self._browser_factory(
                timeout=self.timeout,
                headless=self.headless,
                binary_location=self.binary_location,
                selector=self.selector,
            ) as browser:
                values: dict[str, Decimal | None] = {}
                for label, url in self.urls.items():
                    html = browser.open(url)
                    values[label] = parse_fund_price(html, self.selector)
                    if values[label] is None:
                        LOGGER.warning("No price element found for %s at %s", label, url)
                    else:
                        LOGGER.info("Extracted %s price: %s", label, values[label])
                return RateSnapshot(values=values)
        except Exception as exc:  # selenium surfaces driver, network and timeout errors alike
            LOGGER.error("Error in unit trust scraper: %s", exc)
            return None


__all__ = [
    "CAL_UNIT_TRUST_URLS",
    "CalculatorBrowser",
    "LATEST_PRICE_SELECTOR",
    "UnitTrustFetcher",
    "parse_fund_price",
]
