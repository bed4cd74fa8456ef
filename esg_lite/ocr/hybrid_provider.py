import time

from esg_lite.logging.logger import Log
from esg_lite.ocr.base import BaseOcrProvider, BaseTextLayerExtractor
from esg_lite.ocr.exceptions import OcrPermanentError, PdfExtractionError
from esg_lite.ocr.formats import PDF, detect_mime_type
from esg_lite.ocr.models import OcrResult


class HybridOcrProvider(BaseOcrProvider):
    """Uses the embedded PDF text when there is enough of it, otherwise a vision provider.

    Without a vision provider only PDFs with a usable text layer can be read.
    """

    name = "hybrid"
    TEXT_LAYER_PROVIDER = "pdf_text_layer"

    def __init__(
        self,
        text_layer: BaseTextLayerExtractor,
        vision: BaseOcrProvider | None,
        min_text_chars: int,
    ) -> None:
        self._text_layer = text_layer
        self._vision = vision
        self._min_text_chars = min_text_chars

    def recognize(self, content: bytes, mime_type: str) -> OcrResult:
        detected = detect_mime_type(content, mime_type)
        if detected == PDF:
            result = self._try_text_layer(content)
            if result is not None:
                return result

        if self._vision is None:
            raise OcrPermanentError(
                f"No text layer found and no vision provider configured for {detected}",
                error_type="unsupported_format",
            )
        return self._vision.recognize(content, detected)

    def _try_text_layer(self, content: bytes) -> OcrResult | None:
        started = time.monotonic()
        try:
            layer = self._text_layer.extract(content)
        except PdfExtractionError as exc:
            if self._vision is None:
                raise
            Log.warning("PDF text layer unreadable, falling back to vision", error=str(exc))
            return None

        text = layer.text
        if len(text) < self._min_text_chars:
            Log.info(
                "PDF text layer too short, treating as scanned document",
                chars=len(text),
                pages=layer.page_count,
            )
            return None

        return OcrResult(
            text=text,
            confidence=1.0,
            provider=self.TEXT_LAYER_PROVIDER,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            metadata={"pageCount": layer.page_count, "mimeType": PDF},
        )
