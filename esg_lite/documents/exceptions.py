from esg_lite.database.models import DocumentRecord


class DocumentError(Exception):
    """Base exception for document lifecycle errors."""


class DocumentNotFoundError(DocumentError):
    """Raised when a document does not exist or is not visible to the caller."""


class DocumentBusyError(DocumentError):
    """Raised when a document already has an in-flight OCR job."""

    def __init__(self, document: DocumentRecord, message: str = "Document is already being processed") -> None:
        super().__init__(message)
        self.document = document


class UploadRejectedError(DocumentError):
    """Raised when an uploaded file fails intake validation."""


class StorageError(DocumentError):
    """Raised when document bytes cannot be read from or written to storage."""
