"""Public interface for the rate_watch package."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlparse, urlunparse

from pymongo import MongoClient
from sqlalchemy import create_engine, text

from rate_watch.config import RateWatchSettings, load_settings
from rate_watch.db import (
    EXCHANGE_RATES,
    UNIT_TRUST_RATES,
    RateTable,
    default_sqlite_path,
)
from rate_watch.db.base_backend import RateStore
from rate_watch.db.mongo_backend import MongoRateStore
from rate_watch.db.relational_backend import RelationalRateStore, SQLiteRateStore
from rate_watch.exceptions import ConfigurationError, RateWatchError
from rate_watch.ingestion.bank_pdf import BankPDFFetcher
from rate_watch.ingestion.strategy import RateFetcher
from rate_watch.notifier import WebhookNotifier
from rate_watch.pipeline import PipelineResult, RatePipeline
from rate_watch.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported only for type checking
    from rate_watch.ingestion.unit_trust import UnitTrustFetcher

LOGGER = get_logger(__name__)

__all__ = [
    "__version__",
    "DatabaseBackend",
    "DatabaseConnectionInfo",
    "EXCHANGE_SOURCE",
    "RateWatch",
    "RateWatchSettings",
    "PipelineResult",
    "SOURCES",
    "UNIT_TRUST_SOURCE",
    "UnitTrustFetcher",
    "load_settings",
]

try:
    __version__ = importlib_metadata.version("rate-watch")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"

EXCHANGE_SOURCE = "exchange"
UNIT_TRUST_SOURCE = "unit-trust"
SOURCES: tuple[str, ...] = (EXCHANGE_SOURCE, UNIT_TRUST_SOURCE)


class DatabaseBackend(str, Enum):
    """Supported datastores for the rate store."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def resolve_backend_and_scheme(cls, scheme: str) -> tuple["DatabaseBackend", str]:
        """Return backend enum + canonical scheme used in connection URLs."""

        if not scheme:
            raise ValueError("DATABASE_URL must include a scheme (e.g. postgres:// or sqlite://)")
        scheme_lower = scheme.lower()
        base_scheme, _, driver = scheme_lower.partition("+")
        if base_scheme in {"postgresql", "postgres"}:
            # Preserve optional driver hints such as ``postgresql+psycopg``.
            canonical_scheme = f"postgresql+{driver}" if driver else "postgresql"
            return cls.POSTGRES, canonical_scheme
        if base_scheme == "sqlite":
            return cls.SQLITE, "sqlite"
        if base_scheme == "mysql":
            canonical_scheme = scheme_lower if driver else "mysql"
            return cls.MYSQL, canonical_scheme
        if base_scheme == "mongodb":
            # Keep srv-style schemes intact so pymongo can route via DNS.
            canonical_scheme = scheme_lower if driver else "mongodb"
            return cls.MONGODB, canonical_scheme
        raise ValueError(
            "Unsupported database backend. Supported values are SQLite, MySQL, "
            "Postgres, and MongoDB."
        )


@dataclass(slots=True)
class DatabaseConnectionInfo:
    """Represents how the rate stores talk to the datastore."""

    backend: DatabaseBackend
    url: str
    name: str | None
    username: str | None
    password: str | None
    host: str | None
    port: int | None

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        """Create a connection object by parsing a database URL/DSN."""

        parsed = urlparse(url)
        if not parsed.scheme:
            raise ValueError("DATABASE_URL must include a scheme (e.g. postgres:// or sqlite://)")
        backend, canonical_scheme = DatabaseBackend.resolve_backend_and_scheme(parsed.scheme)
        if parsed.scheme != canonical_scheme:
            parsed = parsed._replace(scheme=canonical_scheme)
            url = urlunparse(parsed)
        if backend is DatabaseBackend.SQLITE:
            name = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
        else:
            name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(
            backend=backend,
            url=url,
            name=name or None,
            username=parsed.username,
            password=parsed.password,
            host=parsed.hostname,
            port=parsed.port,
        )

    @classmethod
    def sqlite(cls, db_path: str | Path | None = None) -> "DatabaseConnectionInfo":
        """Local SQLite file; ``rate_watch.db`` in the working directory by default."""

        path = default_sqlite_path() if db_path is None else Path(db_path).expanduser().resolve()
        return cls(
            backend=DatabaseBackend.SQLITE,
            url=f"sqlite:///{quote(path.as_posix(), safe='/:')}",
            name=str(path),
            username=None,
            password=None,
            host=None,
            port=None,
        )

    def with_password(self, password: str | None) -> "DatabaseConnectionInfo":
        """Return a copy whose DSN carries ``password`` unless one is already set."""

        if not password or self.password or self.is_sqlite:
            return self
        parsed = urlparse(self.url)
        userinfo = f"{quote(self.username or '', safe='')}:{quote(password, safe='')}"
        host = parsed.netloc.rpartition("@")[2]
        url = urlunparse(parsed._replace(netloc=f"{userinfo}@{host}"))
        return replace(self, url=url, password=password)

    @property
    def is_sqlite(self) -> bool:
        return self.backend is DatabaseBackend.SQLITE


class RateWatch:
    """Package facade that wires stores, fetchers and notifiers from one settings object."""

    __slots__ = ("settings", "connection_info", "_stores")

    _DRIVER_HINTS: dict[DatabaseBackend, str] = {
        DatabaseBackend.POSTGRES: "Install psycopg2 or psycopg2-binary via 'pip install psycopg2-binary'.",
        DatabaseBackend.MYSQL: "Install mysqlclient or PyMySQL via 'pip install mysqlclient' or 'pip install PyMySQL'.",
    }

    __version__ = __version__

    def __init__(self, settings: RateWatchSettings | None = None) -> None:
        """Configure the datastore, webhooks and scrapers.

        When ``settings`` is omitted they are read from the environment (and a
        ``.env`` file if present). An empty ``DATABASE_URL`` selects the local
        SQLite file so a single cron job works without extra infrastructure.
        """

        self.settings = settings or load_settings()
        self.connection_info = self._build_connection_info(self.settings)
        self._stores: dict[str, RateStore] = {}

    @staticmethod
    def _build_connection_info(settings: RateWatchSettings) -> DatabaseConnectionInfo:
        if not settings.database_url:
            return DatabaseConnectionInfo.sqlite()
        info = DatabaseConnectionInfo.from_url(settings.database_url)
        return info.with_password(settings.database_key)

    def store(self, table: RateTable) -> RateStore:
        """Return (and cache) the store for ``table``."""

        if table.name not in self._stores:
            self._stores[table.name] = self._build_store(table)
        return self._stores[table.name]

    def _build_store(self, table: RateTable) -> RateStore:
        info = self.connection_info
        if info.backend is DatabaseBackend.SQLITE:
            return SQLiteRateStore(info.name or default_sqlite_path(), table)
        if info.backend is DatabaseBackend.MONGODB:
            store: RateStore = MongoRateStore(info.url, table, database=info.name)
        else:
            store = RelationalRateStore(info.url, table)
        store.ensure_schema()
        return store

    def exchange_rate_fetcher(self) -> BankPDFFetcher:
        return BankPDFFetcher(timeout=self.settings.request_timeout)

    def unit_trust_fetcher(self) -> "UnitTrustFetcher":
        from rate_watch.ingestion.unit_trust import UnitTrustFetcher

        return UnitTrustFetcher(
            timeout=self.settings.page_load_timeout,
            headless=self.settings.headless,
            binary_location=self.settings.chrome_binary,
        )

    def fetcher(self, source: str) -> RateFetcher:
        """Return the fetcher for ``source`` without touching the store or webhooks."""

        if source == EXCHANGE_SOURCE:
            return self.exchange_rate_fetcher()
        if source == UNIT_TRUST_SOURCE:
            return self.unit_trust_fetcher()
        raise ValueError(f"source must be one of: {', '.join(SOURCES)}")

    def exchange_rate_pipeline(self) -> RatePipeline:
        """Bank PDF exchange rates announced on the primary webhook."""

        return RatePipeline(
            "exchange rate",
            self.exchange_rate_fetcher(),
            self.store(EXCHANGE_RATES),
            self._notifier(self.settings.discord_webhook_url, "DISCORD_WEBHOOK_URL"),
            subject="{label} rate",
        )

    def unit_trust_pipeline(self) -> RatePipeline:
        """Unit trust fund prices announced on the secondary webhook."""

        return RatePipeline(
            "unit trust price",
            self.unit_trust_fetcher(),
            self.store(UNIT_TRUST_RATES),
            self._notifier(self.settings.discord_webhook_url_cal, "DISCORD_WEBHOOK_URL_CAL"),
        )

    def pipeline(self, source: str) -> RatePipeline:
        if source == EXCHANGE_SOURCE:
            return self.exchange_rate_pipeline()
        if source == UNIT_TRUST_SOURCE:
            return self.unit_trust_pipeline()
        raise ValueError(f"source must be one of: {', '.join(SOURCES)}")

    def check(self, source: str = EXCHANGE_SOURCE) -> PipelineResult:
        """Run one observe/compare/notify/persist cycle for ``source``."""

        return self.pipeline(source).run()

    def check_all(self) -> dict[str, PipelineResult]:
        """Run every source once; a failing source is logged and left out."""

        results: dict[str, PipelineResult] = {}
        for source in SOURCES:
            try:
                results[source] = self.check(source)
            except RateWatchError as exc:
                LOGGER.error("%s check failed: %s", source, exc)
        return results

    def _notifier(self, url: str, env_name: str) -> WebhookNotifier:
        if not url:
            raise ConfigurationError(f"{env_name} is not configured")
        return WebhookNotifier(url, timeout=self.settings.request_timeout)

    def connection(self) -> tuple[bool, str | None]:
        """Attempt to establish a database connection and report the outcome."""

        if self.connection_info.backend is DatabaseBackend.MONGODB:
            return self._probe_mongodb()
        return self._probe_relational_db()

    def _missing_driver_message(self, exc: ModuleNotFoundError) -> str:
        module_name = exc.name or str(exc)
        hint = self._DRIVER_HINTS.get(self.connection_info.backend)
        base = (
            f"Missing optional dependency '{module_name}' required for "
            f"{self.connection_info.backend.value} connections."
        )
        if hint:
            return f"{base} {hint}"
        return base

    def _probe_relational_db(self) -> tuple[bool, str | None]:
        engine = None
        try:
            engine = create_engine(self.connection_info.url, future=True)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except ModuleNotFoundError as exc:
            return False, self._missing_driver_message(exc)
        except Exception as exc:  # pragma: no cover - SQLAlchemy provides error detail
            return False, str(exc)
        finally:
            if engine is not None:
                engine.dispose()
        return True, None

    def _probe_mongodb(self) -> tuple[bool, str | None]:
        client: MongoClient | None = None
        try:
            client = MongoClient(self.connection_info.url, serverSelectionTimeoutMS=5000)
            client.admin.command("ping")
        except Exception as exc:  # pragma: no cover - pymongo surfaces detail
            return False, str(exc)
        finally:
            if client is not None:
                client.close()
        return True, None

    def close(self) -> None:
        for store in self._stores.values():
            store.close()
        self._stores.clear()

    def __enter__(self) -> "RateWatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def __getattr__(name: str) -> Any:
    """Lazily import the browser scraper to avoid loading Selenium on import."""

    if name == "UnitTrustFetcher":
        from rate_watch.ingestion.unit_trust import UnitTrustFetcher as _fetcher

        return _fetcher
    raise AttributeError(f"module 'rate_watch' has no attribute {name}")
