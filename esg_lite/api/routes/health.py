from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from esg_lite.api.dependencies import get_container
from esg_lite.api.errors import error_body
from esg_lite.container import Container
from esg_lite.queue.exceptions import QueueError

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/ocr", response_model=None)
def ocr_health(container: Container = Depends(get_container)) -> dict[str, Any] | JSONResponse:
    try:
        waiting = container.queue.waiting_count()
    except QueueError as exc:
        return JSONResponse(
            error_body(str(exc), exc.code, retryAfter=exc.retry_after, details={"queue": "down"}),
            status_code=503,
        )
    return {"success": True, "data": {"queue": "up", "waiting": waiting}}
