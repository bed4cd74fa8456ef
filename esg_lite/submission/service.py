from datetime import UTC, datetime

from esg_lite.database.models import DocumentRecord, DocumentStatus
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.documents.exceptions import DocumentBusyError
from esg_lite.documents.models import UserContext
from esg_lite.logging.logger import Log
from esg_lite.maintenance.stale_sweeper import StaleDocumentSweeper
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.exceptions import JobConflictError, QueueError
from esg_lite.queue.models import JobPriority, OcrJobPayload
from esg_lite.queue.surge import SurgeSchedule
from esg_lite.quota.models import organization_key
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.submission.models import SubmissionResult

QUEUE_ERROR_TYPE = "QUEUE_ERROR"


class OcrSubmissionService:
    """Admits OCR requests and moves documents from UPLOADED/FAILED/PROCESSED to QUEUED.

    At most one job is live per document: the busy check rejects in-flight
    documents, and the final transition is a compare-and-set on the status
    read at the start of the request.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        organizations: OrganizationRepository,
        queue: BaseJobQueue,
        rate_limiter: RateLimiter,
        surge: SurgeSchedule,
        sweeper: StaleDocumentSweeper,
    ) -> None:
        self._documents = documents
        self._organizations = organizations
        self._queue = queue
        self._rate_limiter = rate_limiter
        self._surge = surge
        self._sweeper = sweeper

    def submit(self, document_id: str, user: UserContext) -> SubmissionResult:
        """Queue OCR for a document.

        Raises:
            RateLimitExceededError: when the organization's request window is exhausted.
            DocumentNotFoundError: if the caller owns no such document.
            DocumentBusyError: if the document already has a live job.
            QueueError: if the job could not be queued.
        """
        rate_key, tier = self._rate_key(user)
        self._rate_limiter.ensure_allowed(rate_key, tier)

        document = self._documents.find_by_id(document_id, user_id=user.user_id)
        if document.status.is_in_flight:
            raise DocumentBusyError(document)

        result = self._enqueue(document, user)
        self._rate_limiter.increment_counter(rate_key)
        return result

    def reprocess(self, document_id: str, user: UserContext) -> SubmissionResult:
        """Clear previous OCR output and queue the document again.

        In-flight documents may only be reprocessed once they are stale.
        """
        rate_key, tier = self._rate_key(user)
        self._rate_limiter.ensure_allowed(rate_key, tier)

        document = self._documents.find_by_id(document_id, user_id=user.user_id)
        if document.status.is_in_flight and not self._sweeper.is_stale(document.updated_at):
            raise DocumentBusyError(document)

        reset = document.status is not DocumentStatus.UPLOADED
        if reset and document.job_id:
            self._sweeper.abandon_job(
                document.job_id, {"error": "Superseded by reprocessing", "errorType": "superseded"}
            )

        result = self._enqueue(document, user, reset=reset)
        self._rate_limiter.increment_counter(rate_key)
        return result

    def _enqueue(
        self,
        document: DocumentRecord,
        user: UserContext,
        reset: bool = False,
    ) -> SubmissionResult:
        """Queue a job, then move the document to QUEUED in one compare-and-set.

        With ``reset`` the same statement clears previous OCR output, so a
        request that fails leaves the document as it was read.
        """
        priority = self._surge.priority_for()
        payload = OcrJobPayload(
            document_id=document.id,
            user_id=document.user_id,
            organization_id=document.organization_id or user.organization_id,
            file_key=document.file_key,
            file_name=document.file_name,
            mime_type=document.mime_type,
            file_size=document.file_size,
            category=document.category.value,
        )

        try:
            job_id = self._queue.enqueue(payload, priority)
        except JobConflictError:
            raise DocumentBusyError(self._documents.find_by_id(document.id)) from None
        except QueueError as exc:
            if reset:
                Log.error(f"Failed to queue document {document.id} for reprocessing: {exc}")
            else:
                self._record_queue_failure(document, exc)
            raise

        message = f"Queued with {priority.value} priority"
        try:
            if reset:
                queued = self._documents.requeue_for_reprocess(
                    document.id, job_id, document.status, document.updated_at, message
                )
            else:
                queued = self._documents.mark_queued(
                    document.id, job_id, expected_status=document.status, message=message
                )
        except Exception:
            Log.error(
                "Job enqueued but document update failed, job is orphaned",
                document_id=document.id,
                job_id=job_id,
            )
            raise

        if not queued:
            try:
                self._queue.cancel(job_id)
            except QueueError as exc:
                Log.error(f"Could not cancel duplicate job {job_id}: {exc}", document_id=document.id)
            raise DocumentBusyError(self._documents.find_by_id(document.id))

        Log.info(
            f"Document {document.id} queued for OCR",
            job_id=job_id,
            priority=priority.value,
        )
        return SubmissionResult(
            document_id=document.id,
            job_id=job_id,
            priority=priority,
            queue_position=self._queue_position(),
            file_size=document.file_size,
        )

    def _record_queue_failure(self, document: DocumentRecord, exc: QueueError) -> None:
        Log.error(f"Failed to queue document {document.id}: {exc}", code=exc.code)
        self._documents.mark_failed(
            document.id,
            {
                "error": str(exc),
                "errorType": QUEUE_ERROR_TYPE,
                "errorCode": exc.code,
                "processedAt": datetime.now(UTC).isoformat(),
                "retryable": exc.retryable,
            },
            stage="queue_error",
            expected_status=document.status,
        )

    def _queue_position(self) -> int | None:
        try:
            return self._queue.waiting_count()
        except QueueError as exc:
            Log.warning(f"Queue position unavailable: {exc}")
            return None

    def _rate_key(self, user: UserContext) -> tuple[str, str]:
        organization = self._organizations.find_by_id(user.organization_id)
        tier = organization.subscription_tier if organization else RateLimiter.DEFAULT_TIER
        return organization_key(user.organization_id), tier
