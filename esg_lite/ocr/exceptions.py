class OcrError(Exception):
    """Base exception for text extraction failures.

    ``error_type`` is the machine-readable classification persisted with the
    document; ``retryable`` decides whether the queue should try again.
    """

    error_type: str = "unknown"
    retryable: bool = True

    def __init__(self, message: str, error_type: str | None = None) -> None:
        super().__init__(message)
        if error_type is not None:
            self.error_type = error_type


class OcrTransientError(OcrError):
    """Provider timeout, network failure or throttling. Worth retrying."""

    error_type = "provider_error"
    retryable = True


class OcrPermanentError(OcrError):
    """Corrupted, empty or unsupported input. Retrying will not help."""

    error_type = "ocr_failed"
    retryable = False


class PdfExtractionError(OcrPermanentError):
    """Raised when a PDF text layer cannot be read."""

    error_type = "unsupported_format"
