from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from esg_lite.api.dependencies import get_container, get_user
from esg_lite.api.errors import error_body
from esg_lite.api.schemas import SubmitOcrRequest
from esg_lite.container import Container
from esg_lite.documents.models import UserContext
from esg_lite.submission.models import estimated_seconds

router = APIRouter(prefix="/ocr", tags=["ocr"])


@router.post("")
def submit_ocr(
    body: SubmitOcrRequest,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    """Queue OCR processing for an uploaded document."""
    result = container.submissions.submit(body.document_id, user)
    return {
        "success": True,
        "message": "Document queued for OCR processing",
        "data": result.to_dict(),
    }


@router.post("/reprocess")
def reprocess_ocr(
    body: SubmitOcrRequest,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    """Discard previous OCR output and queue the document again."""
    result = container.submissions.reprocess(body.document_id, user)
    data = result.to_dict()
    data["estimatedTime"] = estimated_seconds(result.file_size)
    return {
        "success": True,
        "message": "Document queued for reprocessing",
        "data": data,
    }


@router.get("", response_model=None)
def get_ocr_status(
    job_id: str | None = Query(default=None, alias="jobId"),
    document_id: str | None = Query(default=None, alias="documentId"),
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any] | JSONResponse:
    """Reconciled OCR status by job id or document id; job id wins when both are given."""
    if job_id:
        status = container.status.resolve_job_status(job_id, user)
    elif document_id:
        status = container.status.resolve_status(document_id, user)
    else:
        return JSONResponse(
            error_body("jobId or documentId is required", "MISSING_PARAMETERS"),
            status_code=400,
        )
    return {"success": True, "data": status.to_dict()}
