"""In-process job queue.

No external services. Used for local development (queue_backend=memory) and
tests; it follows the same state machine as the Postgres queue.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import JobConflictError, QueueFullError
from esg_lite.queue.models import (
    ClaimedJob,
    JobPriority,
    OcrJobPayload,
    QueueJobState,
    QueueJobStatus,
)


LIVE_STATES = ("created", "retry", "active")


@dataclass
class _MemoryJob:
    id: str
    payload: OcrJobPayload
    priority: JobPriority
    state: str = "created"
    progress: int = 0
    retry_count: int = 0
    output: dict[str, Any] | None = None
    start_after: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_on: datetime | None = None
    completed_on: datetime | None = None
    created_on: datetime = field(default_factory=lambda: datetime.now(UTC))


class InMemoryJobQueue(BaseJobQueue):
    """Thread-safe dictionary-backed queue."""

    def __init__(
        self,
        *,
        retry_limit: int = 3,
        retry_delay_seconds: int = 60,
        expire_in_seconds: int = 3600,
        max_waiting: int = 0,
    ) -> None:
        self._retry_limit = retry_limit
        self._retry_delay = timedelta(seconds=retry_delay_seconds)
        self._expire_in = timedelta(seconds=expire_in_seconds)
        self._max_waiting = max_waiting
        self._jobs: dict[str, _MemoryJob] = {}
        self._lock = threading.Lock()

    def enqueue(self, payload: OcrJobPayload, priority: JobPriority) -> str:
        with self._lock:
            for job in self._jobs.values():
                if job.payload.document_id == payload.document_id and job.state in LIVE_STATES:
                    raise JobConflictError(
                        f"Job {job.id} is still live for document {payload.document_id}"
                    )
            if self._max_waiting > 0 and self._count_waiting() >= self._max_waiting:
                raise QueueFullError("OCR queue capacity limit reached")
            job_id = str(uuid.uuid4())
            self._jobs[job_id] = _MemoryJob(id=job_id, payload=payload, priority=priority)
            return job_id

    def get_status(self, job_id: str) -> QueueJobStatus | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            state = QueueJobState.from_raw(job.state)
            output = job.output or {}
            return QueueJobStatus(
                id=job.id,
                state=state,
                progress=job.progress,
                priority=job.priority,
                data=job.payload.to_dict(),
                result=output if state is QueueJobState.COMPLETED else None,
                error=output.get("error") if state is QueueJobState.FAILED else None,
                retry_count=job.retry_count,
                created_at=job.created_on,
                processed_at=job.completed_on,
            )

    def waiting_count(self) -> int:
        with self._lock:
            return self._count_waiting()

    def cancel(self, job_id: str) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state not in ("created", "retry"):
                return False
            job.state = "cancelled"
            job.completed_on = datetime.now(UTC)
            return True

    def claim_next(self) -> ClaimedJob | None:
        now = datetime.now(UTC)
        with self._lock:
            due = [
                job
                for job in self._jobs.values()
                if job.state in ("created", "retry") and job.start_after <= now
            ]
            if not due:
                return None
            job = min(due, key=lambda j: (-j.priority.weight, j.created_on))
            job.state = "active"
            job.started_on = now
            return ClaimedJob(
                id=job.id,
                payload=job.payload,
                retry_count=job.retry_count,
                retry_limit=self._retry_limit,
            )

    def report_progress(self, job_id: str, progress: int) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is not None and job.state == "active":
                job.progress = progress

    def complete(self, job_id: str, result: dict[str, Any]) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != "active":
                return
            job.state = "completed"
            job.progress = 100
            job.output = result
            job.completed_on = datetime.now(UTC)

    def fail(self, job_id: str, error: dict[str, Any], retryable: bool) -> str:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state != "active":
                return "failed"
            job.output = error
            if retryable and job.retry_count < self._retry_limit:
                job.state = "retry"
                job.retry_count += 1
                job.start_after = datetime.now(UTC) + self._retry_delay
            else:
                job.state = "failed"
                job.completed_on = datetime.now(UTC)
            return job.state

    def abandon(self, job_id: str, error: dict[str, Any]) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state not in LIVE_STATES:
                return False
            job.state = "failed"
            job.output = error
            job.completed_on = datetime.now(UTC)
            return True

    def expire_stale(self) -> int:
        """Fail overdue active jobs and forget finished ones older than the expiry."""
        now = datetime.now(UTC)
        expired = 0
        with self._lock:
            for job in self._jobs.values():
                if job.state == "active" and job.started_on and now - job.started_on > self._expire_in:
                    job.state = "failed"
                    job.output = {"error": "Job exceeded its expiry while active"}
                    job.completed_on = now
                    expired += 1
            finished = [
                job.id
                for job in self._jobs.values()
                if job.state not in LIVE_STATES
                and job.completed_on is not None
                and now - job.completed_on >= self._expire_in
            ]
            for job_id in finished:
                del self._jobs[job_id]
        return expired

    def _count_waiting(self) -> int:
        return sum(1 for job in self._jobs.values() if job.state in ("created", "retry"))
