import psycopg

from esg_lite.database.models import DocumentStatus
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.documents.exceptions import DocumentNotFoundError, StorageError
from esg_lite.logging.logger import Log
from esg_lite.ocr.exceptions import OcrError
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import QueueError
from esg_lite.queue.models import ClaimedJob
from esg_lite.worker.processor import OcrProcessor
from esg_lite.worker.results import failure_payload


def classify_failure(exc: Exception) -> tuple[str, bool]:
    """Map a processing exception to (error_type, retryable)."""
    if isinstance(exc, OcrError):
        return exc.error_type, exc.retryable
    if isinstance(exc, (FileNotFoundError, StorageError)):
        return "file_missing", False
    if isinstance(exc, TimeoutError):
        return "timeout", True
    return "unknown", True


class JobRunner:
    """Run one claimed job, persist its outcome, and apply retry logic."""

    def __init__(
        self,
        processor: OcrProcessor,
        documents: DocumentRepository,
        queue: BaseJobQueue,
    ) -> None:
        self._processor = processor
        self._documents = documents
        self._queue = queue

    def run(self, job: ClaimedJob) -> None:
        """Execute a single job with error handling."""
        document_id = job.payload.document_id
        Log.info(
            f"Running job {job.id} (attempt {job.retry_count + 1})",
            document_id=document_id,
        )

        try:
            document = self._documents.find_by_id(document_id)
        except DocumentNotFoundError:
            Log.warning(f"Document {document_id} no longer exists, skipping job {job.id}")
            self._acknowledge(job, {"skipped": True, "reason": "document_missing"})
            return

        if not self._documents.mark_processing(document_id, job.id):
            Log.warning(
                f"Job {job.id} superseded, document {document_id} is {document.status.value}",
                current_job_id=document.job_id,
            )
            self._acknowledge(job, {"skipped": True, "reason": "superseded"})
            return

        self._progress(job, 5, "starting", "OCR processing started")
        try:
            outcome = self._processor.process(
                document,
                progress=lambda value, stage, message: self._progress(job, value, stage, message),
            )
        except Exception as exc:
            self._handle_failure(job, exc)
            return

        persisted = self._documents.mark_processed(
            document_id,
            job.id,
            ocr_data=outcome.ocr_data,
            confidence=outcome.confidence,
            extracted_inn=outcome.extracted_inn,
            inn_matches=outcome.inn_matches,
        )
        if not persisted:
            Log.warning(
                f"Document {document_id} left PROCESSING before job {job.id} finished, result discarded"
            )
            self._acknowledge(job, {"skipped": True, "reason": "document_changed"})
            return

        self._acknowledge(
            job,
            {
                "documentId": document_id,
                "textLength": outcome.ocr_data["textLength"],
                "confidence": outcome.confidence,
            },
        )
        Log.info(f"Job {job.id} completed successfully", document_id=document_id)

    def _handle_failure(self, job: ClaimedJob, exc: Exception) -> None:
        """Fail the queue job; the queue decides between retry and final failure."""
        document_id = job.payload.document_id
        error_type, retryable = classify_failure(exc)
        Log.error(
            f"Job {job.id} failed: {exc}",
            document_id=document_id,
            error_type=error_type,
            retryable=retryable,
        )
        payload = failure_payload(str(exc), error_type, retryable)

        try:
            outcome = self._queue.fail(job.id, payload, retryable)
        except QueueError as queue_exc:
            Log.error(f"Could not record failure of job {job.id} in queue: {queue_exc}")
            outcome = "failed"

        if outcome == "retry":
            self._documents.mark_retry_scheduled(
                document_id,
                job.id,
                f"Retry scheduled after error: {exc}",
            )
            Log.warning(f"Job {job.id} will be retried (attempt {job.retry_count + 2})")
            return

        self._documents.mark_failed(
            document_id,
            payload,
            stage="failed",
            expected_status=DocumentStatus.PROCESSING,
            job_id=job.id,
        )
        Log.error(f"Job {job.id} permanently failed after {job.retry_count + 1} attempts")

    def _progress(self, job: ClaimedJob, progress: int, stage: str, message: str) -> None:
        try:
            self._queue.report_progress(job.id, progress)
            self._documents.update_progress(
                job.payload.document_id, job.id, progress, stage, message
            )
        except (QueueError, psycopg.Error) as exc:
            Log.warning(f"Progress update failed for job {job.id}: {exc}", stage=stage)

    def _acknowledge(self, job: ClaimedJob, result: dict[str, object]) -> None:
        try:
            self._queue.complete(job.id, result)
        except QueueError as exc:
            Log.error(f"Could not acknowledge job {job.id}: {exc}")
