"""Environment driven configuration for rate_watch."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings


class RateWatchSettings(BaseSettings):
    # Datastore DSN; empty selects the local SQLite file.
    database_url: str = ""
    database_key: str | None = None

    discord_webhook_url: str = ""
    discord_webhook_url_cal: str = ""

    request_timeout: float = 30.0
    page_load_timeout: float = 30.0
    chrome_binary: str | None = None
    headless: bool = True

    @field_validator(
        "database_url",
        "database_key",
        "discord_webhook_url",
        "discord_webhook_url_cal",
        "chrome_binary",
        mode="before",
    )
    @classmethod
    def strip_quotes(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return value.strip().strip('"').strip("'")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_settings(**overrides: Any) -> RateWatchSettings:
    """Read settings from the environment, letting keyword arguments win."""

    return RateWatchSettings(**overrides)


__all__ = ["RateWatchSettings", "load_settings"]
