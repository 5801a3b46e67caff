"""Flask application exposing the rate checks as HTTP trigger endpoints."""

from __future__ import annotations

from flask import Flask

from rate_watch import RateWatch
from rate_watch.config import RateWatchSettings
from rate_watch.web.routes import api_bp

NO_CACHE = "no-cache, no-store, must-revalidate"


def create_app(
    settings: RateWatchSettings | None = None,
    watch: RateWatch | None = None,
) -> Flask:
    """Application factory; ``watch`` may be injected to share or stub the facade."""

    app = Flask(__name__)
    app.extensions["rate_watch"] = watch or RateWatch(settings)
    app.register_blueprint(api_bp)

    @app.after_request
    def disable_caching(response):
        response.headers["Cache-Control"] = NO_CACHE
        return response

    @app.errorhandler(404)
    def page_not_found(error):
        return "Not found", 404

    @app.errorhandler(500)
    def internal_error(error):
        return "Internal server error", 500

    return app


__all__ = ["NO_CACHE", "create_app"]
