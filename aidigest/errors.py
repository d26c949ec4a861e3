"""Exception taxonomy for the newsletter pipeline.

Per-source fetch failures are absorbed by the aggregator; generation and
delivery failures propagate to whoever triggered the run.
"""

from __future__ import annotations

from typing import Any


class NewsletterError(Exception):
    """Base class for pipeline errors. ``details`` is surfaced in API responses."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(NewsletterError):
    """A required setting (e.g. the completion API key) is missing."""


class SourceFetchError(NewsletterError):
    """A single data source could not be fetched or decoded."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to fetch {source}: {reason}", {"source": source})
        self.source = source
        self.reason = reason


class GenerationError(NewsletterError):
    """The completion service returned no usable newsletter content."""


class DeliveryError(NewsletterError):
    """The mail service rejected every delivery attempt."""

    def __init__(self, attempts: int, last_error: str):
        super().__init__(
            f"Failed to send newsletter after {attempts} attempts: {last_error}",
            {"attempts": attempts, "last_error": last_error},
        )
        self.attempts = attempts
        self.last_error = last_error
