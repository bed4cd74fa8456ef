from dataclasses import dataclass
from datetime import datetime
from typing import Any

from esg_lite.database.models import DocumentStatus
from esg_lite.queue.models import QueueJobState

QUEUE_TO_UNIFIED: dict[QueueJobState, str] = {
    QueueJobState.WAITING: "queued",
    QueueJobState.ACTIVE: "processing",
    QueueJobState.COMPLETED: "completed",
    QueueJobState.FAILED: "failed",
}

DB_TO_UNIFIED: dict[DocumentStatus, str] = {
    DocumentStatus.UPLOADED: "not_started",
    DocumentStatus.QUEUED: "queued",
    DocumentStatus.PROCESSING: "processing",
    DocumentStatus.PROCESSED: "completed",
    DocumentStatus.FAILED: "failed",
}


def unified_from_queue(state: QueueJobState) -> str:
    return QUEUE_TO_UNIFIED.get(state, "unknown")


def unified_from_db(status: DocumentStatus) -> str:
    return DB_TO_UNIFIED[status]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class UnifiedStatus:
    """One authoritative view of a document's OCR progress."""

    document_id: str | None
    job_id: str | None
    status: str
    progress: int
    stage: str | None = None
    message: str | None = None
    ocr_results: dict[str, Any] | None = None
    error: dict[str, Any] | None = None
    queue_info: dict[str, Any] | None = None
    priority: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "jobId": self.job_id,
            "status": self.status,
            "progress": self.progress,
            "stage": self.stage,
            "message": self.message,
            "ocrResults": self.ocr_results,
            "error": self.error,
            "queueInfo": self.queue_info,
            "priority": self.priority,
            "createdAt": _iso(self.created_at),
            "processedAt": _iso(self.processed_at),
        }
