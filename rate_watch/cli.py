"""Command line entry point: run a rate check once or serve the trigger endpoints."""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from rate_watch import SOURCES, RateWatch
from rate_watch.config import load_settings
from rate_watch.exceptions import FetchError, RateWatchError
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["main", "parse_args"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rate-watch", description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", help="Run the selected checks once and exit")
    check.add_argument(
        "--source",
        choices=(*SOURCES, "all"),
        default="exchange",
        help="Which data source to check (default: exchange)",
    )
    check.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and print the snapshot without notifying or persisting",
    )

    serve = subparsers.add_parser("serve", help="Serve the HTTP trigger endpoints")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    return parser.parse_args(argv)


def _selected_sources(source: str) -> tuple[str, ...]:
    return SOURCES if source == "all" else (source,)


def run_check(watch: RateWatch, source: str, *, dry_run: bool = False) -> int:
    failures = 0
    for current in _selected_sources(source):
        try:
            if dry_run:
                snapshot = watch.fetcher(current).fetch()
                if snapshot is None:
                    raise FetchError(f"{current} fetch returned no snapshot")
                summary = snapshot.summary()
            else:
                summary = watch.check(current).summary()
        except RateWatchError as exc:
            LOGGER.error("%s check failed: %s", current, exc)
            failures += 1
            continue
        print(json.dumps({current: summary}))
    return 1 if failures else 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    if args.command == "serve":
        from rate_watch.web import create_app

        app = create_app(settings)
        app.run(host=args.host, port=args.port)
        return 0
    with RateWatch(settings) as watch:
        return run_check(watch, args.source, dry_run=args.dry_run)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
