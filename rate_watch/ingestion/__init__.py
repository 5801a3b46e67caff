"""Fetchers that turn published rate sources into :class:`RateSnapshot` objects."""
