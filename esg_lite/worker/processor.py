from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from esg_lite.database.models import DocumentCategory, DocumentRecord
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.documents.storage import FileStorage
from esg_lite.logging.logger import Log
from esg_lite.ocr.base import BaseOcrProvider
from esg_lite.ocr.exceptions import OcrPermanentError
from esg_lite.ocr.inn import extract_inn, inn_matches
from esg_lite.transport.analyzer import TransportAnalyzer
from esg_lite.worker.results import success_payload

ProgressCallback = Callable[[int, str, str], None]


@dataclass(frozen=True)
class ProcessingOutcome:
    """Everything persisted with a PROCESSED document."""

    ocr_data: dict[str, Any]
    confidence: float
    extracted_inn: str | None
    inn_matches: bool | None


class OcrProcessor:
    """Orchestrates text extraction for one document.

    Pipeline: load -> recognise -> analyse -> match INN. Persisting the
    outcome is left to the caller.
    """

    def __init__(
        self,
        storage: FileStorage,
        ocr_provider: BaseOcrProvider,
        transport_analyzer: TransportAnalyzer,
        organizations: OrganizationRepository,
        min_text_chars: int,
    ) -> None:
        self._storage = storage
        self._ocr_provider = ocr_provider
        self._transport_analyzer = transport_analyzer
        self._organizations = organizations
        self._min_text_chars = min_text_chars

    def process(self, document: DocumentRecord, progress: ProgressCallback) -> ProcessingOutcome:
        # Step 1: Load file
        progress(30, "downloading", "Loading file from storage")
        content = self._storage.load(document.file_key)
        Log.info(f"Loaded {len(content)} bytes for document {document.id}")

        # Step 2: Recognise text
        progress(50, "recognizing", "Recognising text")
        result = self._ocr_provider.recognize(content, document.mime_type)
        if len(result.text.strip()) < self._min_text_chars:
            raise OcrPermanentError(
                f"Recognised text too short ({len(result.text.strip())} chars)",
                error_type="ocr_failed",
            )
        Log.info(
            f"Recognised {len(result.text)} chars from document {document.id}",
            provider=result.provider,
            confidence=result.confidence,
        )

        # Step 3: Category specific analysis
        progress(70, "analyzing", "Analysing document contents")
        extracted_data: dict[str, Any] = {}
        if document.category is DocumentCategory.TRANSPORT:
            analysis = self._transport_analyzer.analyze(result.text)
            if analysis is not None:
                extracted_data["transport"] = analysis.to_payload()
            else:
                Log.info(f"No transport data recognised in document {document.id}")

        # Step 4: Counterparty INN
        extracted = extract_inn(result.text)
        organization_inn = None
        if document.organization_id:
            organization = self._organizations.find_by_id(document.organization_id)
            organization_inn = organization.inn if organization else None
        matches = inn_matches(extracted, organization_inn)
        if matches is False:
            Log.warning(
                f"INN mismatch for document {document.id}",
                extracted=extracted,
                organization_inn=organization_inn,
            )

        progress(90, "saving", "Saving results")
        return ProcessingOutcome(
            ocr_data=success_payload(result, extracted_data),
            confidence=result.confidence,
            extracted_inn=extracted,
            inn_matches=matches,
        )
