"""SQLAlchemy powered rate store for SQLite, Postgres and MySQL."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import Column, DateTime, Integer, Numeric, String, create_engine, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from rate_watch.db import EXCHANGE_RATES, UNIT_TRUST_RATES, RateTable
from rate_watch.db.base_backend import RateStore
from rate_watch.exceptions import StoreError
from rate_watch.utils.logger import get_logger

if TYPE_CHECKING:  # pragma: no cover - type checker helper
    from sqlalchemy.engine import Engine

LOGGER = get_logger(__name__)

# Digits kept after the decimal point in the ``rate`` column.
RATE_SCALE = 6
_RATE_QUANTUM = Decimal(1).scaleb(-RATE_SCALE)


class Base(DeclarativeBase):
    pass


class _ExchangeRate(Base):
    __tablename__ = EXCHANGE_RATES.name

    id = Column(Integer, primary_key=True, autoincrement=True)
    currency = Column(String(16), nullable=False, index=True)
    rate = Column(Numeric(18, RATE_SCALE), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)


class _UnitTrustRate(Base):
    __tablename__ = UNIT_TRUST_RATES.name

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(16), nullable=False, index=True)
    rate = Column(Numeric(18, RATE_SCALE), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)


_MODELS: dict[str, Any] = {
    EXCHANGE_RATES.name: _ExchangeRate,
    UNIT_TRUST_RATES.name: _UnitTrustRate,
}


class RelationalRateStore(RateStore):
    """Rate store backed by any SQLAlchemy-supported relational database."""

    def __init__(self, url: str, table: RateTable, *, engine: "Engine | None" = None) -> None:
        if table.name not in _MODELS:
            raise ValueError(f"Unsupported rate table: {table.name}")
        self.url = url
        self.table = table
        self._model = _MODELS[table.name]
        self._label_column = getattr(self._model, table.label_column)
        self._engine_instance: Engine | None = engine
        self._session_factory: sessionmaker[Session] | None = None

    def _get_engine(self) -> "Engine":
        if self._engine_instance is None:
            self._engine_instance = create_engine(self.url, future=True)
        return self._engine_instance

    def _sessions(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self._get_engine(), expire_on_commit=False, future=True
            )
        return self._session_factory

    def normalize(self, value: Decimal) -> Decimal:
        """Round ``value`` to the column scale; values that already fit keep their exponent."""

        if value.as_tuple().exponent >= -RATE_SCALE:
            return value
        return value.quantize(_RATE_QUANTUM, rounding=ROUND_HALF_UP)

    def ensure_schema(self) -> None:
        LOGGER.info("Ensuring %s schema exists", self.table.name)
        try:
            engine = self._get_engine()
            with engine.begin() as connection:
                connection.execute(text("SELECT 1"))
            Base.metadata.create_all(engine, tables=[self._model.__table__])
        except ModuleNotFoundError as exc:
            raise StoreError(
                f"Missing database driver '{exc.name or exc}' for {self.table.name}"
            ) from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to ensure {self.table.name} schema: {exc}") from exc

    def append(self, label: str, value: Decimal, *, observed_at: datetime | None = None) -> bool:
        row = self._model(
            **{
                self.table.label_column: label,
                "rate": self.normalize(value),
                "date": observed_at or datetime.now(timezone.utc),
            }
        )
        try:
            with self._sessions()() as session:
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            LOGGER.error("Error saving %s rate to %s: %s", label, self.table.name, exc)
            return False
        LOGGER.info("Saved %s rate to database: %s", label, value)
        return True

    def most_recent(self, label: str) -> Decimal | None:
        model = self._model
        stmt = (
            select(model.rate)
            .where(self._label_column == label)
            .order_by(model.date.desc(), model.id.desc())
            .limit(1)
        )
        try:
            with self._sessions()() as session:
                value = session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Error fetching previous {label} rate: {exc}") from exc
        if value is None:
            LOGGER.info("No previous %s rate recorded in %s", label, self.table.name)
            return None
        return _to_decimal(value)

    def close(self) -> None:
        if self._engine_instance is not None:
            self._engine_instance.dispose()


class SQLiteRateStore(RelationalRateStore):
    """Relational store bound to a local SQLite file; the schema is created eagerly."""

    def __init__(self, db_path: str | Path, table: RateTable) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(f"sqlite:///{self.db_path}", table)
        self.ensure_schema()


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


__all__ = ["RATE_SCALE", "RelationalRateStore", "SQLiteRateStore"]
