import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from esg_lite.config.settings import Settings
from esg_lite.database.repositories.job_repository import JobRepository
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import QueueError, QueueFullError, classify_queue_error
from esg_lite.queue.models import (
    ClaimedJob,
    JobPriority,
    OcrJobPayload,
    QueueJobState,
    QueueJobStatus,
)

T = TypeVar("T")

WAITING_STATES = ("created", "retry")


class PostgresJobQueue(BaseJobQueue):
    """Job queue stored in the ocr_jobs table of the application database."""

    def __init__(self, job_repo: JobRepository, settings: Settings) -> None:
        self._job_repo = job_repo
        self._name = settings.ocr_queue_name
        self._retry_limit = settings.ocr_retry_limit
        self._retry_delay = settings.ocr_retry_delay_seconds
        self._expire_in_seconds = settings.ocr_expire_in_seconds
        self._max_waiting = settings.queue_max_waiting

    def enqueue(self, payload: OcrJobPayload, priority: JobPriority) -> str:
        job_id = str(uuid.uuid4())

        def _insert() -> None:
            if self._max_waiting > 0:
                waiting = self._job_repo.count_in_states(self._name, WAITING_STATES)
                if waiting >= self._max_waiting:
                    raise QueueFullError(
                        f"OCR queue capacity limit reached ({waiting} waiting jobs)"
                    )
            self._job_repo.insert(
                job_id=job_id,
                name=self._name,
                data=payload.to_dict(),
                priority=priority.weight,
                retry_limit=self._retry_limit,
                retry_delay=self._retry_delay,
                expire_in_seconds=self._expire_in_seconds,
                singleton_key=f"ocr:{payload.document_id}",
            )

        self._call(_insert)
        return job_id

    def get_status(self, job_id: str) -> QueueJobStatus | None:
        record = self._call(lambda: self._job_repo.find_by_id(job_id))
        if record is None:
            return None
        output = record.output or {}
        state = QueueJobState.from_raw(record.state)
        return QueueJobStatus(
            id=record.id,
            state=state,
            progress=record.progress,
            priority=JobPriority.from_weight(record.priority),
            data=record.data,
            result=output if state is QueueJobState.COMPLETED else None,
            error=output.get("error") if state is QueueJobState.FAILED else None,
            retry_count=record.retry_count,
            created_at=record.created_on,
            processed_at=record.completed_on,
        )

    def waiting_count(self) -> int:
        return self._call(lambda: self._job_repo.count_in_states(self._name, WAITING_STATES))

    def cancel(self, job_id: str) -> bool:
        return self._call(lambda: self._job_repo.cancel(job_id))

    def claim_next(self) -> ClaimedJob | None:
        record = self._call(lambda: self._job_repo.claim_next(self._name))
        if record is None:
            return None
        return ClaimedJob(
            id=record.id,
            payload=OcrJobPayload.from_dict(record.data),
            retry_count=record.retry_count,
            retry_limit=record.retry_limit,
        )

    def report_progress(self, job_id: str, progress: int) -> None:
        self._call(lambda: self._job_repo.update_progress(job_id, progress))

    def complete(self, job_id: str, result: dict[str, Any]) -> None:
        self._call(lambda: self._job_repo.complete(job_id, result))

    def fail(self, job_id: str, error: dict[str, Any], retryable: bool) -> str:
        state = self._call(lambda: self._job_repo.fail(job_id, error, retryable))
        return state or "failed"

    def abandon(self, job_id: str, error: dict[str, Any]) -> bool:
        return self._call(lambda: self._job_repo.abandon(job_id, error))

    def expire_stale(self) -> int:
        return self._call(
            lambda: self._job_repo.fail_expired(
                self._name, "Job exceeded its expiry while active"
            )
        )

    def _call(self, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except QueueError:
            raise
        except Exception as exc:
            raise classify_queue_error(exc) from exc
