"""Exception types raised across the ingestion and query layers."""

from __future__ import annotations


class HealthFeedError(Exception):
    """Base class for all health_feed errors."""


class ConfigurationError(HealthFeedError):
    """Raised at start-up when the source catalog or config is invalid."""


class UnknownSourceError(HealthFeedError, KeyError):
    """Raised when code references a source key that was never registered."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"Unknown source key: {self.key!r}"


class InvalidQueryError(HealthFeedError, ValueError):
    """Raised for malformed caller input, e.g. an empty strict search."""
