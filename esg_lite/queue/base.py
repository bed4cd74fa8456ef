from abc import ABC, abstractmethod
from typing import Any

from esg_lite.queue.models import ClaimedJob, JobPriority, OcrJobPayload, QueueJobStatus


class BaseJobQueue(ABC):
    """Contract for OCR job queue backends.

    Producer-side methods are used by the API, consumer-side methods by the
    worker. Every method raises only QueueError subclasses.
    """

    @abstractmethod
    def enqueue(self, payload: OcrJobPayload, priority: JobPriority) -> str:
        """Submit a job and return its non-empty identifier.

        Raises:
            QueueUnavailableError: on connection or timeout problems.
            QueueFullError: when the queue is at capacity.
            JobConflictError: when the document already has a live job.
            QueueError: for any other failure.
        """

    @abstractmethod
    def get_status(self, job_id: str) -> QueueJobStatus | None:
        """Return the live job status, or None if the queue does not know the job."""

    @abstractmethod
    def waiting_count(self) -> int:
        """Number of jobs waiting to be picked up."""

    @abstractmethod
    def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not started. Returns False if it already started."""

    @abstractmethod
    def claim_next(self) -> ClaimedJob | None:
        """Claim the next due job for this worker, highest priority first."""

    @abstractmethod
    def report_progress(self, job_id: str, progress: int) -> None:
        """Record 0-100 progress for an active job."""

    @abstractmethod
    def complete(self, job_id: str, result: dict[str, Any]) -> None:
        """Acknowledge successful completion of an active job."""

    @abstractmethod
    def fail(self, job_id: str, error: dict[str, Any], retryable: bool) -> str:
        """Fail an active job.

        Returns 'retry' when the job was rescheduled, 'failed' when it is final.
        """

    @abstractmethod
    def abandon(self, job_id: str, error: dict[str, Any]) -> bool:
        """Fail a live job at once, whatever its state, without a retry.

        Returns False when the job is unknown or already finished.
        """

    @abstractmethod
    def expire_stale(self) -> int:
        """Fail active jobs that exceeded their expiry. Returns how many."""

    def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
