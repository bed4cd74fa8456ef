from dataclasses import dataclass
from typing import Any

from esg_lite.queue.models import JobPriority

ESTIMATED_TIME_BY_PRIORITY: dict[JobPriority, str] = {
    JobPriority.HIGH: "1-2 minutes",
    JobPriority.NORMAL: "2-5 minutes",
}

# (upper size bound in bytes, seconds)
ESTIMATED_SECONDS_BY_SIZE: tuple[tuple[int, int], ...] = (
    (1024 * 1024, 15),
    (10 * 1024 * 1024, 45),
    (50 * 1024 * 1024, 120),
)
ESTIMATED_SECONDS_MAX = 300


def estimated_seconds(file_size: int) -> int:
    for bound, seconds in ESTIMATED_SECONDS_BY_SIZE:
        if file_size < bound:
            return seconds
    return ESTIMATED_SECONDS_MAX


@dataclass(frozen=True)
class SubmissionResult:
    document_id: str
    job_id: str
    priority: JobPriority
    queue_position: int | None
    file_size: int

    @property
    def estimated_processing_time(self) -> str:
        return ESTIMATED_TIME_BY_PRIORITY[self.priority]

    def to_dict(self) -> dict[str, Any]:
        return {
            "documentId": self.document_id,
            "jobId": self.job_id,
            "status": "queued",
            "priority": self.priority.value,
            "estimatedProcessingTime": self.estimated_processing_time,
            "queuePosition": self.queue_position,
        }
