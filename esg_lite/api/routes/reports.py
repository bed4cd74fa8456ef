from typing import Any

from fastapi import APIRouter, Depends

from esg_lite.api.dependencies import get_container, get_user
from esg_lite.api.schemas import CreateReportRequest, UpdateReportRequest
from esg_lite.container import Container
from esg_lite.documents.models import UserContext
from esg_lite.reports.models import report_to_dict

router = APIRouter(prefix="/reports", tags=["reports"])


@router.post("", status_code=201)
def create_report(
    body: CreateReportRequest,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    report = container.reports.create(user, body.to_request())
    return {"success": True, "data": report_to_dict(report)}


@router.get("/{report_id}")
def get_report(
    report_id: str,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    report = container.reports.get(report_id, user)
    return {"success": True, "data": report_to_dict(report)}


@router.patch("/{report_id}")
def update_report(
    report_id: str,
    body: UpdateReportRequest,
    container: Container = Depends(get_container),
    user: UserContext = Depends(get_user),
) -> dict[str, Any]:
    """The only way to change report totals after creation."""
    report = container.reports.update(report_id, user, body.to_update())
    return {"success": True, "data": report_to_dict(report)}
