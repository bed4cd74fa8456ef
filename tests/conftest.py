import dataclasses
import io
from datetime import UTC, datetime

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from esg_lite.database.models import (
    DocumentRecord,
    DocumentStatus,
    OrganizationRecord,
    ReportRecord,
)
from esg_lite.documents.exceptions import DocumentNotFoundError
from esg_lite.documents.models import NewDocument
from esg_lite.reports.exceptions import ReportNotFoundError


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def invoice_pdf_bytes() -> bytes:
    """A text PDF long enough to skip the vision fallback."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    lines = [
        "Invoice 2024-117 for electricity supply",
        "Supplier INN 7707083893",
        "Consumption 12500 kWh, period January 2024",
    ]
    for offset, line in enumerate(lines):
        c.drawString(72, 720 - offset * 20, line)
    c.save()
    return buf.getvalue()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryDocumentRepository:
    """Dictionary-backed stand-in for DocumentRepository with the same transitions."""

    def __init__(self) -> None:
        self.rows: dict[str, DocumentRecord] = {}

    def add(self, record: DocumentRecord) -> DocumentRecord:
        self.rows[record.id] = record
        return dataclasses.replace(record)

    def create(self, document: NewDocument) -> DocumentRecord:
        now = _utcnow()
        return self.add(
            DocumentRecord(
                id=document.id,
                user_id=document.user_id,
                organization_id=document.organization_id,
                file_key=document.file_key,
                file_name=document.file_name,
                mime_type=document.mime_type,
                file_size=document.file_size,
                category=document.category,
                status=DocumentStatus.UPLOADED,
                created_at=now,
                updated_at=now,
            )
        )

    def find_by_id(self, document_id: str, user_id: str | None = None) -> DocumentRecord:
        record = self.rows.get(document_id)
        if record is None or (user_id is not None and record.user_id != user_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return dataclasses.replace(record)

    def _update(self, document_id: str, **changes: object) -> None:
        self.rows[document_id] = dataclasses.replace(
            self.rows[document_id], updated_at=_utcnow(), **changes
        )

    def mark_queued(
        self, document_id: str, job_id: str, expected_status: DocumentStatus, message: str
    ) -> bool:
        record = self.rows.get(document_id)
        if record is None or record.status is not expected_status:
            return False
        self._update(
            document_id,
            status=DocumentStatus.QUEUED,
            job_id=job_id,
            ocr_processed=False,
            processing_progress=0,
            processing_stage="queued",
            processing_message=message,
        )
        return True

    def mark_processing(self, document_id: str, job_id: str) -> bool:
        record = self.rows.get(document_id)
        if record is None or record.job_id != job_id or not record.status.is_in_flight:
            return False
        self._update(
            document_id,
            status=DocumentStatus.PROCESSING,
            processing_stage="starting",
            processing_started_at=_utcnow(),
        )
        return True

    def _is_processing(self, document_id: str, job_id: str) -> bool:
        record = self.rows.get(document_id)
        return (
            record is not None
            and record.job_id == job_id
            and record.status is DocumentStatus.PROCESSING
        )

    def update_progress(
        self, document_id: str, job_id: str, progress: int, stage: str, message: str
    ) -> bool:
        if not self._is_processing(document_id, job_id):
            return False
        self._update(
            document_id,
            processing_progress=progress,
            processing_stage=stage,
            processing_message=message,
        )
        return True

    def mark_processed(
        self,
        document_id: str,
        job_id: str,
        ocr_data: dict,
        confidence: float,
        extracted_inn: str | None,
        inn_matches: bool | None,
    ) -> bool:
        if not self._is_processing(document_id, job_id):
            return False
        self._update(
            document_id,
            status=DocumentStatus.PROCESSED,
            ocr_processed=True,
            ocr_data=ocr_data,
            ocr_confidence=confidence,
            extracted_inn=extracted_inn,
            inn_matches=inn_matches,
            processing_progress=100,
            processing_stage="completed",
            processing_message="OCR processing completed",
            processing_completed_at=_utcnow(),
        )
        return True

    def mark_retry_scheduled(self, document_id: str, job_id: str, message: str) -> bool:
        if not self._is_processing(document_id, job_id):
            return False
        self._update(
            document_id,
            status=DocumentStatus.QUEUED,
            processing_stage="retry_scheduled",
            processing_message=message,
        )
        return True

    def mark_failed(
        self,
        document_id: str,
        ocr_data: dict,
        stage: str,
        *,
        expected_status: DocumentStatus,
        job_id: str | None = None,
    ) -> bool:
        record = self.rows.get(document_id)
        if record is None or record.status is not expected_status:
            return False
        if job_id is not None and record.job_id != job_id:
            return False
        self._update(
            document_id,
            status=DocumentStatus.FAILED,
            ocr_processed=False,
            ocr_data=ocr_data,
            ocr_confidence=None,
            processing_stage=stage,
            processing_message=ocr_data.get("error"),
            processing_completed_at=_utcnow(),
        )
        return True

    def mark_stale_failed(self, document_id: str, ocr_data: dict, cutoff: datetime) -> bool:
        record = self.rows.get(document_id)
        if record is None or record.status is not DocumentStatus.PROCESSING:
            return False
        if record.updated_at is None or record.updated_at >= cutoff:
            return False
        self._update(
            document_id,
            status=DocumentStatus.FAILED,
            ocr_processed=False,
            ocr_data=ocr_data,
            processing_stage="stale_timeout",
            processing_message=ocr_data.get("error"),
        )
        return True

    def requeue_for_reprocess(
        self,
        document_id: str,
        job_id: str,
        expected_status: DocumentStatus,
        expected_updated_at: datetime | None,
        message: str,
    ) -> bool:
        record = self.rows.get(document_id)
        if record is None or record.status is not expected_status:
            return False
        if record.updated_at != expected_updated_at:
            return False
        self._update(
            document_id,
            status=DocumentStatus.QUEUED,
            job_id=job_id,
            ocr_processed=False,
            ocr_data=None,
            ocr_confidence=None,
            extracted_inn=None,
            inn_matches=None,
            processing_progress=0,
            processing_stage="queued",
            processing_message=message,
            processing_started_at=None,
            processing_completed_at=None,
        )
        return True

    def find_processed(
        self, user_id: str, document_ids: list[str] | None = None
    ) -> list[DocumentRecord]:
        return [
            dataclasses.replace(record)
            for record in self.rows.values()
            if record.user_id == user_id
            and record.status is DocumentStatus.PROCESSED
            and record.inn_matches is not False
            and (document_ids is None or record.id in document_ids)
        ]

    def find_stale_processing(self, cutoff: datetime) -> list[DocumentRecord]:
        return [
            dataclasses.replace(record)
            for record in self.rows.values()
            if record.status is DocumentStatus.PROCESSING
            and record.updated_at is not None
            and record.updated_at < cutoff
        ]

    def count_created_since(self, organization_id: str, since: datetime) -> int:
        return sum(
            1
            for record in self.rows.values()
            if record.organization_id == organization_id
            and record.created_at is not None
            and record.created_at >= since
        )


class InMemoryOrganizationRepository:
    def __init__(self, *organizations: OrganizationRecord) -> None:
        self.rows = {organization.id: organization for organization in organizations}

    def find_by_id(self, organization_id: str) -> OrganizationRecord | None:
        return self.rows.get(organization_id)


class InMemoryReportRepository:
    def __init__(self) -> None:
        self.rows: dict[str, ReportRecord] = {}

    def create(self, report: ReportRecord) -> ReportRecord:
        now = _utcnow()
        stored = dataclasses.replace(report, created_at=now, updated_at=now)
        self.rows[stored.id] = stored
        return stored

    def find_by_id(self, report_id: str, user_id: str) -> ReportRecord:
        report = self.rows.get(report_id)
        if report is None or report.user_id != user_id:
            raise ReportNotFoundError(f"Report {report_id} not found")
        return report

    def update_totals(self, report: ReportRecord) -> ReportRecord:
        if report.id not in self.rows:
            raise ReportNotFoundError(f"Report {report.id} not found")
        stored = dataclasses.replace(report, updated_at=_utcnow())
        self.rows[stored.id] = stored
        return stored

    def count_created_since(self, organization_id: str, since: datetime) -> int:
        return sum(
            1
            for report in self.rows.values()
            if report.organization_id == organization_id
            and report.created_at is not None
            and report.created_at >= since
        )


class InMemoryRateLimitStore:
    def __init__(self) -> None:
        self.counts: dict[tuple[str, datetime], int] = {}

    def current_count(self, key: str, window_start: datetime) -> int:
        return self.counts.get((key, window_start), 0)

    def increment(self, key: str, window_start: datetime) -> int:
        self.counts[(key, window_start)] = self.counts.get((key, window_start), 0) + 1
        return self.counts[(key, window_start)]

    def delete_older_than(self, cutoff: datetime) -> int:
        stale = [bucket for bucket in self.counts if bucket[1] < cutoff]
        for bucket in stale:
            del self.counts[bucket]
        return len(stale)


@pytest.fixture()
def document_repo() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture()
def organization() -> OrganizationRecord:
    return OrganizationRecord(
        id="org-1",
        inn="7707083893",
        name="ООО Ромашка",
        subscription_tier="STANDARD",
    )


@pytest.fixture()
def organization_repo(organization: OrganizationRecord) -> InMemoryOrganizationRepository:
    return InMemoryOrganizationRepository(organization)


@pytest.fixture()
def report_repo() -> InMemoryReportRepository:
    return InMemoryReportRepository()


@pytest.fixture()
def rate_limit_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()
