class ReportError(Exception):
    """Base exception for report generation errors."""


class ReportNotFoundError(ReportError):
    """Raised when a report does not exist or belongs to another user."""


class ReportValidationError(ReportError):
    """Raised when a report request is malformed or mixes calculation modes."""


class ReportNotAllowedError(ReportError):
    """Raised when the organization may not generate the requested report type."""
