"""Errors raised by the roster extraction pipeline."""
from typing import Optional


class ExtractionError(Exception):
    """Base class for irrecoverable extraction failures reported to the caller."""


class UpstreamUnavailableError(ExtractionError):
    """The vision model could not be reached, failed, or timed out."""


class MalformedResponseError(ExtractionError):
    """The model output could not be recovered as a JSON document."""

    def __init__(self, message: str, excerpt: Optional[str] = None):
        super().__init__(message)
        self.excerpt = excerpt


class UpstreamTimeoutError(UpstreamUnavailableError):
    """The vision model did not answer within the configured timeout."""
