from abc import ABC, abstractmethod

from esg_lite.ocr.models import OcrResult, TextLayer


class BaseOcrProvider(ABC):
    """Contract for document text recognition providers."""

    name: str = "base"

    @abstractmethod
    def recognize(self, content: bytes, mime_type: str) -> OcrResult:
        """Recognise text in a document.

        Args:
            content: Raw file bytes.
            mime_type: Declared MIME type of the file.

        Returns:
            Recognised text with a confidence in [0, 1].

        Raises:
            OcrTransientError: if the failure may go away on retry.
            OcrPermanentError: if the input itself cannot be processed.
        """


class BaseTextLayerExtractor(ABC):
    """Contract for PDF embedded-text readers."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> TextLayer:
        """Read the text layer of every page.

        Raises:
            PdfExtractionError: if the PDF cannot be parsed.
        """
