from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class DocumentStatus(str, Enum):
    UPLOADED = "UPLOADED"
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.PROCESSED, DocumentStatus.FAILED)

    @property
    def is_in_flight(self) -> bool:
        """A job exists for the document and has not finished yet."""
        return self in (DocumentStatus.QUEUED, DocumentStatus.PROCESSING)


class DocumentCategory(str, Enum):
    PRODUCTION = "PRODUCTION"
    SUPPLIERS = "SUPPLIERS"
    WASTE = "WASTE"
    TRANSPORT = "TRANSPORT"
    ENERGY = "ENERGY"
    OTHER = "OTHER"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "DocumentCategory":
        """Parse a category tag, falling back to UNKNOWN for anything unrecognised."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


class ReportType(str, Enum):
    REPORT_296FZ = "REPORT_296FZ"
    CBAM = "CBAM"
    CARBON_FOOTPRINT = "CARBON_FOOTPRINT"


class CalculationMethod(str, Enum):
    AUTOMATIC = "automatic_from_documents"
    MANUAL = "manual_input"


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: str
    user_id: str
    file_key: str
    file_name: str
    mime_type: str
    file_size: int
    status: DocumentStatus
    category: DocumentCategory = DocumentCategory.UNKNOWN
    organization_id: str | None = None
    processing_progress: int = 0
    processing_stage: str | None = None
    processing_message: str | None = None
    job_id: str | None = None
    ocr_processed: bool = False
    ocr_data: dict[str, Any] | None = None
    ocr_confidence: float | None = None
    extracted_inn: str | None = None
    inn_matches: bool | None = None
    processing_started_at: datetime | None = None
    processing_completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class OrganizationRecord:
    """Represents a row from the organizations table."""

    id: str
    inn: str | None = None
    name: str | None = None
    subscription_tier: str = "FREE"
    documents_per_month: int = 0
    reports_per_month: int = 0
    is_blocked: bool = False
    can_generate_296fz: bool = True


@dataclass
class ReportRecord:
    """Represents a row from the reports table."""

    id: str
    user_id: str
    name: str
    report_type: ReportType
    period: str
    calculation_method: CalculationMethod
    total_emissions: float
    document_count: int
    scope1: float
    scope2: float
    scope3: float
    status: str = "READY"
    organization_id: str | None = None
    report_period_start: date | None = None
    report_period_end: date | None = None
    submission_deadline: date | None = None
    emission_data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class JobRecord:
    """Represents a row from the ocr_jobs table."""

    id: str
    name: str
    state: str
    priority: int
    data: dict[str, Any]
    output: dict[str, Any] | None = None
    progress: int = 0
    retry_limit: int = 0
    retry_count: int = 0
    retry_delay: int = 0
    expire_in_seconds: int = 0
    singleton_key: str | None = None
    start_after: datetime | None = None
    started_on: datetime | None = None
    completed_on: datetime | None = None
    created_on: datetime | None = None
