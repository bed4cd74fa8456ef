from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.logging.logger import Log
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import QueueError
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.worker.results import failure_payload

STALE_ERROR_TYPE = "stale_timeout"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class SweepResult:
    documents_failed: int
    jobs_expired: int
    jobs_abandoned: int = 0
    rate_windows_removed: int = 0


class StaleDocumentSweeper:
    """Fails documents abandoned in PROCESSING and queue jobs past their expiry.

    A swept document's job is failed in the queue too, so the document can be
    reprocessed right away. Old rate gate windows are dropped on the same pass.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        queue: BaseJobQueue,
        stale_after_minutes: int,
        clock: Callable[[], datetime] = _utcnow,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._documents = documents
        self._queue = queue
        self._stale_after = timedelta(minutes=stale_after_minutes)
        self._clock = clock
        self._rate_limiter = rate_limiter

    def cutoff(self) -> datetime:
        return self._clock() - self._stale_after

    def is_stale(self, updated_at: datetime | None) -> bool:
        return updated_at is not None and updated_at < self.cutoff()

    def sweep(self) -> SweepResult:
        cutoff = self.cutoff()
        failed = 0
        abandoned = 0
        minutes = int(self._stale_after.total_seconds() // 60)
        for document in self._documents.find_stale_processing(cutoff):
            payload = failure_payload(
                f"Processing timed out after {minutes} minutes without progress",
                STALE_ERROR_TYPE,
                retryable=True,
            )
            if not self._documents.mark_stale_failed(document.id, payload, cutoff):
                continue
            failed += 1
            Log.warning(
                f"Document {document.id} stuck in PROCESSING, marked as failed",
                job_id=document.job_id,
                last_update=document.updated_at,
            )
            if document.job_id and self.abandon_job(document.job_id, payload):
                abandoned += 1

        try:
            expired = self._queue.expire_stale()
        except QueueError as exc:
            Log.warning(f"Could not expire stale queue jobs: {exc}")
            expired = 0

        removed = self._rate_limiter.cleanup_expired() if self._rate_limiter else 0

        if failed or expired:
            Log.warning(
                "Stale sweep finished",
                documents_failed=failed,
                jobs_expired=expired,
                jobs_abandoned=abandoned,
            )
        return SweepResult(
            documents_failed=failed,
            jobs_expired=expired,
            jobs_abandoned=abandoned,
            rate_windows_removed=removed,
        )

    def abandon_job(self, job_id: str, error: dict[str, Any]) -> bool:
        """Fail a document's live job so a new one can be queued. Queue errors are logged."""
        try:
            return self._queue.abandon(job_id, error)
        except QueueError as exc:
            Log.warning(f"Could not fail job {job_id}: {exc}")
            return False
