import io

import pdfplumber
import pymupdf

from esg_lite.config.settings import Settings
from esg_lite.ocr.base import BaseTextLayerExtractor
from esg_lite.ocr.exceptions import PdfExtractionError
from esg_lite.ocr.models import TextLayer


class PdfPlumberTextLayer(BaseTextLayerExtractor):
    """Reads the PDF text layer with pdfplumber."""

    def extract(self, pdf_bytes: bytes) -> TextLayer:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [(page.extract_text() or "").strip() for page in pdf.pages]
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber could not read PDF: {exc}") from exc
        return TextLayer(pages=pages)


class PyMuPdfTextLayer(BaseTextLayerExtractor):
    """Reads the PDF text layer with PyMuPDF."""

    def extract(self, pdf_bytes: bytes) -> TextLayer:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text().strip() for page in doc]
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf could not read PDF: {exc}") from exc
        return TextLayer(pages=pages)


class TextLayerExtractorFactory:
    """Creates the PDF text layer reader selected by ``pdf_engine``."""

    ADAPTERS: dict[str, type[BaseTextLayerExtractor]] = {
        "pdfplumber": PdfPlumberTextLayer,
        "pymupdf": PyMuPdfTextLayer,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseTextLayerExtractor:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
