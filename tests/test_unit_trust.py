from __future__ import annotations

from decimal import Decimal

import pytest
from selenium.common.exceptions import TimeoutException, WebDriverException

from rate_watch.ingestion import unit_trust
from rate_watch.ingestion.unit_trust import (
    CAL_UNIT_TRUST_URLS,
    CalculatorBrowser,
    UnitTrustFetcher,
    parse_fund_price,
)


def _page(price: str | None) -> str:
    if price is None:
        return "<html><body><div class='calculator'>Loading...</div></body></html>"
    return f"<html><body><div class='latest-price'>Latest <span> {price} </span></div></body></html>"


class _DummyDriver:
    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.page_source = ""
        self.visited: list[str] = []
        self.page_load_timeout: float | None = None
        self.quit_calls = 0

    def set_page_load_timeout(self, timeout: float) -> None:
        self.page_load_timeout = timeout

    def get(self, url: str) -> None:
        self.visited.append(url)
        self.page_source = self.pages[url]

    def execute_script(self, script: str) -> str:
        return "complete"

    def find_elements(self, *_: object) -> list[object]:
        return [object()] if "latest-price" in self.page_source else []

    def quit(self) -> None:
        self.quit_calls += 1


class _ImmediateWebDriverWait:
    def __init__(self, driver, _timeout):
        self.driver = driver

    def until(self, method):
        result = method(self.driver)
        if result:
            return result
        raise TimeoutException("condition not met")


@pytest.fixture(autouse=True)
def immediate_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(unit_trust, "WebDriverWait", _ImmediateWebDriverWait)


class _FakeBrowser:
    """Stands in for ``CalculatorBrowser`` and records its lifecycle."""

    instances: list["_FakeBrowser"] = []

    def __init__(self, pages: dict[str, object], **kwargs: object) -> None:
        self.pages = pages
        self.kwargs = kwargs
        self.opened: list[str] = []
        self.close_calls = 0
        _FakeBrowser.instances.append(self)

    def open(self, url: str) -> str:
        self.opened.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page

    def __enter__(self) -> "_FakeBrowser":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_calls += 1


def _factory(pages: dict[str, object]):
    _FakeBrowser.instances = []

    def _build(**kwargs: object) -> _FakeBrowser:
        return _FakeBrowser(pages, **kwargs)

    return _build


def test_parse_fund_price_extracts_decimal() -> None:
    assert parse_fund_price(_page("LKR 12.3456")) == Decimal("12.3456")


def test_parse_fund_price_returns_none_when_element_missing() -> None:
    assert parse_fund_price(_page(None)) is None


def test_parse_fund_price_returns_none_without_decimal() -> None:
    assert parse_fund_price(_page("n/a")) is None


def test_calculator_browser_returns_rendered_source() -> None:
    url = CAL_UNIT_TRUST_URLS["QEF"]
    driver = _DummyDriver({url: _page("45.10")})
    browser = CalculatorBrowser(driver=driver, timeout=30)

    html = browser.open(url)

    assert driver.page_load_timeout == 30
    assert driver.visited == [url]
    assert parse_fund_price(html) == Decimal("45.10")


def test_calculator_browser_tolerates_missing_selector() -> None:
    url = CAL_UNIT_TRUST_URLS["BF"]
    driver = _DummyDriver({url: _page(None)})
    browser = CalculatorBrowser(driver=driver)

    assert parse_fund_price(browser.open(url)) is None


def test_calculator_browser_quits_exactly_once() -> None:
    driver = _DummyDriver({})

    with CalculatorBrowser(driver=driver) as browser:
        browser.close()

    assert driver.quit_calls == 1


def test_fetcher_reads_both_funds_in_one_session() -> None:
    factory = _factory(
        {
            CAL_UNIT_TRUST_URLS["QEF"]: _page("45.10"),
            CAL_UNIT_TRUST_URLS["BF"]: _page("LKR 21.9876"),
        }
    )
    fetcher = UnitTrustFetcher(timeout=30.0, browser_factory=factory)

    snapshot = fetcher.fetch()

    assert snapshot is not None
    assert snapshot.values == {"QEF": Decimal("45.10"), "BF": Decimal("21.9876")}
    (browser,) = _FakeBrowser.instances
    assert browser.opened == [CAL_UNIT_TRUST_URLS["QEF"], CAL_UNIT_TRUST_URLS["BF"]]
    assert browser.kwargs["timeout"] == 30.0
    assert browser.close_calls == 1


def test_fetcher_returns_partial_snapshot_when_price_missing() -> None:
    factory = _factory(
        {
            CAL_UNIT_TRUST_URLS["QEF"]: _page(None),
            CAL_UNIT_TRUST_URLS["BF"]: _page("21.50"),
        }
    )

    snapshot = UnitTrustFetcher(browser_factory=factory).fetch()

    assert snapshot is not None
    assert snapshot.values == {"QEF": None, "BF": Decimal("21.50")}


def test_fetcher_returns_none_and_releases_browser_on_navigation_error() -> None:
    factory = _factory(
        {
            CAL_UNIT_TRUST_URLS["QEF"]: _page("45.10"),
            CAL_UNIT_TRUST_URLS["BF"]: TimeoutException("navigation timed out"),
        }
    )

    assert UnitTrustFetcher(browser_factory=factory).fetch() is None
    (browser,) = _FakeBrowser.instances
    assert browser.close_calls == 1


def test_fetcher_returns_none_when_browser_cannot_launch() -> None:
    def _failing_factory(**_: object) -> CalculatorBrowser:
        raise WebDriverException("chrome not reachable")

    assert UnitTrustFetcher(browser_factory=_failing_factory).fetch() is None


def test_fetcher_uses_custom_urls() -> None:
    urls = {"GF": "https://cal.lk/unittrust/calculator/?fund=GF"}
    factory = _factory({urls["GF"]: _page("10.01")})

    fetcher = UnitTrustFetcher(urls, browser_factory=factory)

    assert fetcher.labels == ("GF",)
    assert fetcher.fetch().values == {"GF": Decimal("10.01")}
