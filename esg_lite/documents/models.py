from dataclasses import dataclass
from typing import Any

from esg_lite.database.models import DocumentCategory, DocumentRecord


@dataclass(frozen=True)
class UserContext:
    """Caller identity as asserted by the upstream auth gateway."""

    user_id: str
    organization_id: str

    @classmethod
    def from_headers(cls, user_id: str, organization_id: str | None) -> "UserContext":
        return cls(user_id=user_id, organization_id=organization_id or user_id)


@dataclass(frozen=True)
class NewDocument:
    """Fields required to register an uploaded file."""

    id: str
    user_id: str
    organization_id: str
    file_key: str
    file_name: str
    mime_type: str
    file_size: int
    category: DocumentCategory


def document_to_dict(document: DocumentRecord) -> dict[str, Any]:
    return {
        "id": document.id,
        "fileName": document.file_name,
        "fileSize": document.file_size,
        "mimeType": document.mime_type,
        "category": document.category.value,
        "status": document.status.value,
        "processingProgress": document.processing_progress,
        "processingStage": document.processing_stage,
        "processingMessage": document.processing_message,
        "jobId": document.job_id,
        "ocrProcessed": document.ocr_processed,
        "ocrConfidence": document.ocr_confidence,
        "extractedINN": document.extracted_inn,
        "innMatches": document.inn_matches,
        "createdAt": document.created_at.isoformat() if document.created_at else None,
        "updatedAt": document.updated_at.isoformat() if document.updated_at else None,
    }
