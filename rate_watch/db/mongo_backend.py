"""MongoDB rate store."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from bson.decimal128 import Decimal128
from pymongo import DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from rate_watch.db import RateTable
from rate_watch.db.base_backend import RateStore
from rate_watch.exceptions import ConfigurationError, StoreError
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)


class MongoRateStore(RateStore):
    """Rate store that keeps one document per observation in a MongoDB collection."""

    def __init__(
        self,
        url: str,
        table: RateTable,
        *,
        database: str | None = None,
        client: MongoClient | None = None,
    ) -> None:
        self.url = url
        self.table = table
        self._owns_client = client is None
        try:
            self._client = client or MongoClient(url, serverSelectionTimeoutMS=5000)
        except PyMongoError as exc:
            raise ConfigurationError(f"Invalid MongoDB connection URI: {exc}") from exc
        try:
            db = self._client.get_default_database() if database is None else self._client[database]
        except PyMongoError as exc:
            self.close()
            raise ConfigurationError(f"MongoDB database name is missing: {exc}") from exc
        self._collection: Collection = db[table.name]

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB collection %s exists", self.table.name)
            self._client.admin.command("ping")
            self._collection.create_index(
                [(self.table.label_column, 1), ("date", DESCENDING)], unique=False
            )
        except PyMongoError as exc:
            raise StoreError(f"Failed to ensure MongoDB schema: {exc}") from exc

    def append(self, label: str, value: Decimal, *, observed_at: datetime | None = None) -> bool:
        document = {
            self.table.label_column: label,
            "rate": Decimal128(value),
            "date": observed_at or datetime.now(timezone.utc),
        }
        try:
            self._collection.insert_one(document)
        except PyMongoError as exc:
            LOGGER.error("Error saving %s rate to %s: %s", label, self.table.name, exc)
            return False
        LOGGER.info("Saved %s rate to database: %s", label, value)
        return True

    def most_recent(self, label: str) -> Decimal | None:
        try:
            document = self._collection.find_one(
                {self.table.label_column: label},
                sort=[("date", DESCENDING)],
            )
        except PyMongoError as exc:
            raise StoreError(f"Error fetching previous {label} rate: {exc}") from exc
        if document is None:
            LOGGER.info("No previous %s rate recorded in %s", label, self.table.name)
            return None
        rate = document["rate"]
        if isinstance(rate, Decimal128):
            return rate.to_decimal()
        return Decimal(str(rate))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["MongoRateStore"]
