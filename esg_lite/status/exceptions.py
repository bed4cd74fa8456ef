class StatusLookupError(Exception):
    """Base exception for status lookups."""


class JobNotFoundError(StatusLookupError):
    """Raised when the queue does not know the requested job."""


class AccessDeniedError(StatusLookupError):
    """Raised when a job belongs to another user."""
