from __future__ import annotations

from typing import Any, Callable

import pytest

from rate_watch.config import RateWatchSettings


@pytest.fixture
def make_settings(tmp_path) -> Callable[..., RateWatchSettings]:
    """Build settings isolated from the developer's environment and ``.env`` file."""

    def _factory(**overrides: Any) -> RateWatchSettings:
        values: dict[str, Any] = {
            "database_url": f"sqlite:///{tmp_path / 'rates.db'}",
            "database_key": None,
            "discord_webhook_url": "https://discord.example/webhooks/fx",
            "discord_webhook_url_cal": "https://discord.example/webhooks/cal",
            "request_timeout": 5.0,
            "page_load_timeout": 5.0,
            "chrome_binary": None,
            "headless": True,
        }
        values.update(overrides)
        return RateWatchSettings(_env_file=None, **values)

    return _factory
