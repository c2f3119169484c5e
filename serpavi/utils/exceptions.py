"""Custom exceptions for the SERPAVI rent reference scraper."""
from typing import Any, Dict, Optional


class SerpaviError(Exception):
    """Base exception carrying diagnostic context."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class TargetUnreachableError(SerpaviError):
    """No navigation path landed on the target domain within its deadline."""

    pass


class SearchInputNotFoundError(SerpaviError):
    """The cadastral reference input could not be located."""

    pass


class ExtractionFailedError(SerpaviError):
    """The result page yielded no usable monetary value."""

    pass


class PipelineCancelled(SerpaviError):
    """A cancellation token was cancelled or its deadline expired."""

    def __init__(self, message: str = "pipeline cancelled", expired: bool = False):
        super().__init__(message)
        self.expired = expired
