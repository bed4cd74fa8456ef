"""Translation of domain exceptions into HTTP error responses."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from esg_lite.documents.exceptions import (
    DocumentBusyError,
    DocumentNotFoundError,
    StorageError,
    UploadRejectedError,
)
from esg_lite.logging.logger import Log
from esg_lite.queue.exceptions import QueueError
from esg_lite.quota.exceptions import (
    OrganizationBlockedError,
    QuotaExceededError,
    RateLimitExceededError,
)
from esg_lite.reports.exceptions import (
    ReportNotAllowedError,
    ReportNotFoundError,
    ReportValidationError,
)
from esg_lite.status.exceptions import AccessDeniedError, JobNotFoundError


class AuthenticationRequiredError(Exception):
    """Raised when the gateway did not supply a caller identity."""


ERROR_TABLE: dict[type[Exception], tuple[int, str]] = {
    AuthenticationRequiredError: (401, "UNAUTHORIZED"),
    DocumentNotFoundError: (404, "DOCUMENT_NOT_FOUND"),
    DocumentBusyError: (409, "DOCUMENT_BUSY"),
    UploadRejectedError: (400, "UPLOAD_REJECTED"),
    StorageError: (500, "STORAGE_ERROR"),
    RateLimitExceededError: (429, "RATE_LIMIT_EXCEEDED"),
    QuotaExceededError: (403, "QUOTA_EXCEEDED"),
    OrganizationBlockedError: (403, "ORGANIZATION_BLOCKED"),
    ReportNotFoundError: (404, "REPORT_NOT_FOUND"),
    ReportValidationError: (400, "VALIDATION_ERROR"),
    ReportNotAllowedError: (403, "REPORT_NOT_ALLOWED"),
    JobNotFoundError: (404, "JOB_NOT_FOUND"),
    AccessDeniedError: (403, "ACCESS_DENIED"),
}


def error_body(message: str, code: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message, "code": code}
    body.update({key: value for key, value in extra.items() if value is not None})
    return body


def error_response(exc: Exception) -> JSONResponse:
    """Build the JSON error response for a known domain exception."""
    if isinstance(exc, QueueError):
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return JSONResponse(
            error_body(str(exc), exc.code, retryable=exc.retryable, retryAfter=exc.retry_after),
            status_code=exc.status_code,
            headers=headers,
        )

    if isinstance(exc, RateLimitExceededError):
        result = exc.result
        return JSONResponse(
            error_body(
                str(exc),
                "RATE_LIMIT_EXCEEDED",
                retryable=True,
                retryAfter=result.retry_after_seconds,
                remaining=result.remaining,
                details={"limit": result.limit, "resetAt": result.reset_at.isoformat()},
            ),
            status_code=429,
            headers={
                "Retry-After": str(result.retry_after_seconds),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": str(result.remaining),
            },
        )

    if isinstance(exc, DocumentBusyError):
        document = exc.document
        return JSONResponse(
            error_body(
                str(exc),
                "DOCUMENT_BUSY",
                details={
                    "documentId": document.id,
                    "status": document.status.value,
                    "jobId": document.job_id,
                    "progress": document.processing_progress,
                },
            ),
            status_code=409,
        )

    for exc_type in type(exc).__mro__:
        if exc_type in ERROR_TABLE:
            status_code, code = ERROR_TABLE[exc_type]
            terminal = isinstance(exc, (QuotaExceededError, OrganizationBlockedError))
            return JSONResponse(
                error_body(str(exc), code, retryable=False if terminal else None),
                status_code=status_code,
            )

    return JSONResponse(error_body("Internal server error", "INTERNAL_ERROR"), status_code=500)


async def _domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    response = error_response(exc)
    if response.status_code >= 500:
        Log.error(f"{request.method} {request.url.path} failed: {exc}")
    return response


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return JSONResponse(
        error_body("Invalid request", "VALIDATION_ERROR", details=jsonable_errors(errors)),
        status_code=400,
    )


def jsonable_errors(errors: Any) -> list[dict[str, Any]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in errors
    ]


def register_error_handlers(app: FastAPI) -> None:
    for exc_type in (*ERROR_TABLE, QueueError):
        app.add_exception_handler(exc_type, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _domain_error_handler)
