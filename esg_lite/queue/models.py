from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class JobPriority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"

    @property
    def weight(self) -> int:
        """Numeric priority stored by the queue; larger is fetched first."""
        return 10 if self is JobPriority.HIGH else 0

    @classmethod
    def from_weight(cls, weight: int) -> "JobPriority":
        return cls.HIGH if weight >= 10 else cls.NORMAL


class QueueJobState(str, Enum):
    """Externally visible queue status of a job."""

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, raw_state: str) -> "QueueJobState":
        mapping = {
            "created": cls.WAITING,
            "retry": cls.WAITING,
            "active": cls.ACTIVE,
            "completed": cls.COMPLETED,
            "failed": cls.FAILED,
            "cancelled": cls.FAILED,
        }
        return mapping.get(raw_state, cls.UNKNOWN)


@dataclass(frozen=True)
class OcrJobPayload:
    """Queue-facing job data for one document extraction."""

    document_id: str
    user_id: str
    file_key: str
    file_name: str
    mime_type: str
    file_size: int
    category: str
    organization_id: str | None = None
    user_mode: str = "PAID"

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "userId": self.user_id,
            "organizationId": self.organization_id,
            "fileKey": self.file_key,
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "fileSize": self.file_size,
            "category": self.category,
            "userMode": self.user_mode,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OcrJobPayload":
        return cls(
            document_id=str(data["documentId"]),
            user_id=str(data["userId"]),
            organization_id=data.get("organizationId"),
            file_key=str(data["fileKey"]),
            file_name=str(data.get("fileName", "")),
            mime_type=str(data.get("mimeType", "application/octet-stream")),
            file_size=int(data.get("fileSize", 0)),
            category=str(data.get("category", "UNKNOWN")),
            user_mode=str(data.get("userMode", "PAID")),
        )


@dataclass(frozen=True)
class QueueJobStatus:
    """Live view of a job as reported by the queue."""

    id: str
    state: QueueJobState
    progress: int
    priority: JobPriority
    data: dict[str, Any] = field(default_factory=dict)
    result: dict[str, Any] | None = None
    error: str | None = None
    retry_count: int = 0
    created_at: datetime | None = None
    processed_at: datetime | None = None

    @property
    def user_id(self) -> str | None:
        value = self.data.get("userId")
        return str(value) if value is not None else None

    @property
    def document_id(self) -> str | None:
        value = self.data.get("documentId")
        return str(value) if value is not None else None


@dataclass(frozen=True)
class ClaimedJob:
    """A job handed to a worker."""

    id: str
    payload: OcrJobPayload
    retry_count: int
    retry_limit: int
