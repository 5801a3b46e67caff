from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from rate_watch import EXCHANGE_SOURCE, UNIT_TRUST_SOURCE, DatabaseBackend
from rate_watch.exceptions import FetchError
from rate_watch.ingestion.models import RateSnapshot
from rate_watch.pipeline import PipelineResult
from rate_watch.web import NO_CACHE, create_app
from rate_watch.web.routes import FAILURE_MESSAGE


class _StubWatch:
    def __init__(self, results: dict[str, object], connection=(True, None)) -> None:
        self.results = results
        self.calls: list[str] = []
        self._connection = connection
        self.connection_info = SimpleNamespace(backend=DatabaseBackend.SQLITE)

    def check(self, source: str) -> PipelineResult:
        self.calls.append(source)
        result = self.results[source]
        if isinstance(result, Exception):
            raise result
        return result

    def connection(self):
        return self._connection


def _result(name: str, values: dict[str, Decimal | None]) -> PipelineResult:
    return PipelineResult(name=name, snapshot=RateSnapshot.from_mapping(values))


@pytest.fixture
def watch() -> _StubWatch:
    return _StubWatch(
        {
            EXCHANGE_SOURCE: _result("exchange rate", {"USD": Decimal("305.50"), "SGD": None}),
            UNIT_TRUST_SOURCE: _result(
                "unit trust price", {"QEF": Decimal("45.10"), "BF": Decimal("21.9876")}
            ),
        }
    )


@pytest.fixture
def client(watch: _StubWatch):
    return create_app(watch=watch).test_client()


def test_trigger_check_returns_observed_rates(client, watch: _StubWatch) -> None:
    response = client.get("/api/trigger-check")

    assert response.status_code == 200
    assert response.get_json() == {"USD": "305.50", "SGD": None}
    assert response.headers["Cache-Control"] == NO_CACHE
    assert watch.calls == [EXCHANGE_SOURCE]


def test_cal_check_accepts_post(client, watch: _StubWatch) -> None:
    response = client.post("/api/cal-check")

    assert response.status_code == 200
    assert response.get_json() == {"QEF": "45.10", "BF": "21.9876"}
    assert watch.calls == [UNIT_TRUST_SOURCE]


def test_failed_check_returns_plain_text_500(watch: _StubWatch) -> None:
    watch.results[EXCHANGE_SOURCE] = FetchError("exchange rate fetch returned no snapshot")
    client = create_app(watch=watch).test_client()

    response = client.get("/api/trigger-check")

    assert response.status_code == 500
    assert response.mimetype == "text/plain"
    assert response.get_data(as_text=True) == FAILURE_MESSAGE
    assert response.headers["Cache-Control"] == NO_CACHE


def test_unexpected_errors_are_also_reported_as_500(watch: _StubWatch) -> None:
    watch.results[UNIT_TRUST_SOURCE] = RuntimeError("boom")
    client = create_app(watch=watch).test_client()

    response = client.get("/api/cal-check")

    assert response.status_code == 500
    assert response.get_data(as_text=True) == FAILURE_MESSAGE


def test_health_reports_database_status(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": "sqlite"}


def test_health_reports_unavailable_database() -> None:
    watch = _StubWatch({}, connection=(False, "connection refused"))
    client = create_app(watch=watch).test_client()

    response = client.get("/health")

    assert response.status_code == 503
    assert response.get_json()["error"] == "connection refused"


def test_unknown_route_is_404(client) -> None:
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.headers["Cache-Control"] == NO_CACHE


def test_factory_builds_facade_from_settings(make_settings) -> None:
    app = create_app(make_settings())

    assert app.extensions["rate_watch"].settings.discord_webhook_url.endswith("/fx")
