"""
Error taxonomy for growthtrack.

All of these are recoverable: callers turn them into a status message
(or an HTTP error) and keep going.
"""


class GrowthTrackError(Exception):
    """Base class for growthtrack errors."""


class ValidationError(GrowthTrackError):
    """Malformed resident id, missing required field or invalid date."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ReferenceDataUnavailable(GrowthTrackError):
    """The reference table for a metric could not be read."""

    def __init__(self, metric: str, reason: str = ""):
        super().__init__(f"Reference data for {metric!r} unavailable: {reason}".rstrip(": "))
        self.metric = metric


class StorageError(GrowthTrackError):
    """The patient/visit store rejected or failed a request."""


class StorageNotConfigured(StorageError):
    """The configured store cannot be reached because it is not set up."""
