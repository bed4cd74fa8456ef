from dataclasses import dataclass
from typing import Any

from esg_lite.database.models import ReportRecord, ReportType


@dataclass(frozen=True)
class ReportRequest:
    """Input for report creation.

    Either ``document_ids`` (or nothing) selects automatic aggregation, or
    explicit scopes select manual input. The two are never combined.
    """

    report_type: ReportType
    period: str
    name: str | None = None
    document_ids: list[str] | None = None
    scope1: float | None = None
    scope2: float | None = None
    scope3: float | None = None

    @property
    def has_explicit_scopes(self) -> bool:
        return any(value is not None for value in (self.scope1, self.scope2, self.scope3))


@dataclass(frozen=True)
class ReportUpdate:
    name: str | None = None
    scope1: float | None = None
    scope2: float | None = None
    scope3: float | None = None
    recalculate: bool = False

    @property
    def has_explicit_scopes(self) -> bool:
        return any(value is not None for value in (self.scope1, self.scope2, self.scope3))


def report_to_dict(report: ReportRecord) -> dict[str, Any]:
    return {
        "id": report.id,
        "name": report.name,
        "reportType": report.report_type.value,
        "period": report.period,
        "status": report.status,
        "calculationMethod": report.calculation_method.value,
        "totalEmissions": report.total_emissions,
        "scope1": report.scope1,
        "scope2": report.scope2,
        "scope3": report.scope3,
        "documentCount": report.document_count,
        "reportPeriodStart": (
            report.report_period_start.isoformat() if report.report_period_start else None
        ),
        "reportPeriodEnd": (
            report.report_period_end.isoformat() if report.report_period_end else None
        ),
        "submissionDeadline": (
            report.submission_deadline.isoformat() if report.submission_deadline else None
        ),
        "emissionData": report.emission_data,
        "createdAt": report.created_at.isoformat() if report.created_at else None,
        "updatedAt": report.updated_at.isoformat() if report.updated_at else None,
    }
