"""CLI entry point for running the rate checks once."""

from __future__ import annotations

from rate_watch.cli import main

if __name__ == "__main__":  # pragma: no cover - thin wrapper
    raise SystemExit(main())
