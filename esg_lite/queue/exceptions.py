import psycopg
from psycopg_pool import PoolTimeout


class QueueError(Exception):
    """Base exception for job queue failures.

    Carries the HTTP-facing classification so callers never inspect the
    underlying transport error.
    """

    status_code: int = 500
    code: str = "QUEUE_ERROR"
    retryable: bool = False
    retry_after: int | None = None


class QueueUnavailableError(QueueError):
    """Connection or timeout failure talking to the queue."""

    status_code = 503
    code = "QUEUE_UNAVAILABLE"
    retryable = True
    retry_after = 30


class QueueFullError(QueueError):
    """The queue refused the job because a capacity limit was reached."""

    status_code = 429
    code = "QUEUE_FULL"
    retryable = True
    retry_after = 60


class JobConflictError(QueueError):
    """A non-terminal job already exists for the same document."""

    status_code = 409
    code = "JOB_CONFLICT"


def classify_queue_error(exc: Exception) -> QueueError:
    """Translate any backend exception into the queue error taxonomy."""
    if isinstance(exc, QueueError):
        return exc
    if isinstance(exc, psycopg.errors.UniqueViolation):
        return JobConflictError(f"Job already exists: {exc}")
    if isinstance(exc, (PoolTimeout, psycopg.OperationalError, TimeoutError, ConnectionError)):
        return QueueUnavailableError(f"Queue service temporarily unavailable: {exc}")

    message = str(exc).lower()
    if "connection" in message or "timeout" in message:
        return QueueUnavailableError(f"Queue service temporarily unavailable: {exc}")
    if "limit" in message or "capacity" in message:
        return QueueFullError(f"Queue is at capacity: {exc}")
    return QueueError(f"Failed to queue OCR job: {exc}")
