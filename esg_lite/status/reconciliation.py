"""Merge queue and database views of a document into one status.

The database is the system of record. The queue is trusted only for
in-flight state: once the document is PROCESSED or FAILED the queue is
ignored, and result payloads are always read from the database.
"""

from typing import Any

from esg_lite.database.models import DocumentRecord, DocumentStatus
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.documents.exceptions import DocumentNotFoundError
from esg_lite.documents.models import UserContext
from esg_lite.logging.logger import Log
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import QueueError
from esg_lite.queue.models import QueueJobState, QueueJobStatus
from esg_lite.status.exceptions import AccessDeniedError, JobNotFoundError
from esg_lite.status.models import UnifiedStatus, unified_from_db, unified_from_queue


def ocr_results(document: DocumentRecord) -> dict[str, Any] | None:
    if document.status is not DocumentStatus.PROCESSED or not document.ocr_data:
        return None
    data = document.ocr_data
    confidence = document.ocr_confidence
    return {
        "text": data.get("textPreview"),
        "textLength": data.get("textLength"),
        "confidence": confidence if confidence is not None else data.get("confidence"),
        "provider": data.get("provider"),
        "processedAt": data.get("processedAt"),
        "extractedData": data.get("extractedData"),
    }


def error_info(document: DocumentRecord) -> dict[str, Any] | None:
    if document.status is not DocumentStatus.FAILED or not document.ocr_data:
        return None
    data = document.ocr_data
    if not data.get("error"):
        return None
    return {
        "message": data["error"],
        "code": data.get("errorCode") or "PROCESSING_ERROR",
        "type": data.get("errorType"),
        "retryable": bool(data.get("retryable", False)),
        "occurredAt": data.get("processedAt"),
    }


def queue_info(live: QueueJobStatus) -> dict[str, Any]:
    return {
        "status": live.state.value,
        "progress": live.progress,
        "priority": live.priority.value,
        "retryCount": live.retry_count,
        "createdAt": live.created_at.isoformat() if live.created_at else None,
        "processedAt": live.processed_at.isoformat() if live.processed_at else None,
    }


def queue_error_info(live: QueueJobStatus) -> dict[str, Any]:
    return {
        "message": live.error or "Job failed in queue",
        "code": "QUEUE_ERROR",
        "type": None,
        "retryable": True,
        "occurredAt": live.processed_at.isoformat() if live.processed_at else None,
    }


class StatusReconciler:
    """Resolves the externally visible OCR status of documents and jobs."""

    def __init__(self, documents: DocumentRepository, queue: BaseJobQueue) -> None:
        self._documents = documents
        self._queue = queue

    def resolve_status(self, document_id: str, user: UserContext) -> UnifiedStatus:
        """Status by document id. Queue failures fall back to the database view.

        Raises:
            DocumentNotFoundError: if the caller owns no such document.
        """
        document = self._documents.find_by_id(document_id, user_id=user.user_id)
        live = None
        if document.job_id:
            try:
                live = self._queue.get_status(document.job_id)
            except QueueError as exc:
                Log.warning(
                    f"Queue status unavailable for job {document.job_id}, using database",
                    error=str(exc),
                )
        return self.merge(document, live)

    def resolve_job_status(self, job_id: str, user: UserContext) -> UnifiedStatus:
        """Status by job id.

        Raises:
            QueueError: if the queue cannot be reached.
            JobNotFoundError: if the queue does not know the job.
            AccessDeniedError: if the job belongs to another user.
        """
        live = self._queue.get_status(job_id)
        if live is None:
            raise JobNotFoundError(f"Job {job_id} not found in queue")
        if live.user_id is not None and live.user_id != user.user_id:
            raise AccessDeniedError("Access denied to this job")

        document = None
        if live.document_id:
            try:
                document = self._documents.find_by_id(live.document_id, user_id=user.user_id)
            except DocumentNotFoundError:
                Log.warning(f"Job {job_id} refers to missing document {live.document_id}")

        if document is None or (document.job_id and document.job_id != job_id):
            return self._queue_only(live)
        return self.merge(document, live)

    def merge(self, document: DocumentRecord, live: QueueJobStatus | None) -> UnifiedStatus:
        status = unified_from_db(document.status)
        progress = document.processing_progress
        stage = document.processing_stage
        error = error_info(document)

        if document.status is DocumentStatus.PROCESSED:
            progress = 100

        if live is not None:
            queue_status = unified_from_queue(live.state)
            if document.status.is_terminal:
                if live.state in (QueueJobState.WAITING, QueueJobState.ACTIVE):
                    self._log_divergence(document, live)
            elif live.state is QueueJobState.COMPLETED:
                # acknowledged in the queue but the result never reached the database
                self._log_divergence(document, live)
                status = "processing"
                progress = max(progress, live.progress)
            elif live.state is QueueJobState.FAILED:
                self._log_divergence(document, live)
                status = queue_status
                progress = live.progress
                stage = "failed"
                error = queue_error_info(live)
            elif queue_status != "unknown":
                status = queue_status
                progress = live.progress

        return UnifiedStatus(
            document_id=document.id,
            job_id=document.job_id or (live.id if live else None),
            status=status,
            progress=progress,
            stage=stage,
            message=document.processing_message,
            ocr_results=ocr_results(document),
            error=error,
            queue_info=queue_info(live) if live else None,
            priority=live.priority.value if live else None,
            created_at=document.created_at,
            processed_at=document.processing_completed_at,
        )

    def _queue_only(self, live: QueueJobStatus) -> UnifiedStatus:
        status = unified_from_queue(live.state)
        if status == "completed":
            # completion is only reported once the database has the result
            status = "processing"
        return UnifiedStatus(
            document_id=live.document_id,
            job_id=live.id,
            status=status,
            progress=live.progress,
            stage=live.state.value,
            queue_info=queue_info(live),
            priority=live.priority.value,
            created_at=live.created_at,
            processed_at=live.processed_at,
            error=queue_error_info(live) if live.state is QueueJobState.FAILED else None,
        )

    @staticmethod
    def _log_divergence(document: DocumentRecord, live: QueueJobStatus) -> None:
        Log.warning(
            "Queue and database disagree on document status",
            document_id=document.id,
            job_id=live.id,
            db_status=document.status.value,
            queue_state=live.state.value,
        )
