import dataclasses
import math
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from esg_lite.database.models import CalculationMethod, ReportRecord, ReportType
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.database.repositories.report_repository import ReportRepository
from esg_lite.documents.models import UserContext
from esg_lite.emissions.aggregator import EmissionAggregator
from esg_lite.logging.logger import Log
from esg_lite.quota.models import organization_key
from esg_lite.quota.monthly_quota import MonthlyQuotaGate
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.reports.exceptions import ReportNotAllowedError, ReportValidationError
from esg_lite.reports.models import ReportRequest, ReportUpdate
from esg_lite.reports.periods import parse_year, reporting_period, submission_deadline

REPORT_TITLES: dict[ReportType, str] = {
    ReportType.REPORT_296FZ: "Отчет 296-ФЗ",
    ReportType.CBAM: "Декларация CBAM",
    ReportType.CARBON_FOOTPRINT: "Углеродный след",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _non_negative(name: str, value: float | None) -> float:
    if value is None:
        return 0.0
    if not math.isfinite(value):
        raise ReportValidationError(f"{name} must be a finite number")
    if value < 0:
        Log.warning(f"Negative {name} clamped to zero", value=value)
        return 0.0
    return float(value)


class ReportService:
    """Creates report snapshots and applies explicit edits to them."""

    def __init__(
        self,
        reports: ReportRepository,
        documents: DocumentRepository,
        organizations: OrganizationRepository,
        aggregator: EmissionAggregator,
        quota: MonthlyQuotaGate,
        rate_limiter: RateLimiter,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._reports = reports
        self._documents = documents
        self._organizations = organizations
        self._aggregator = aggregator
        self._quota = quota
        self._rate_limiter = rate_limiter
        self._tz = tz
        self._clock = clock

    def create(self, user: UserContext, request: ReportRequest) -> ReportRecord:
        """Admit, aggregate and store a new report.

        Raises:
            ReportValidationError: on a bad period or when both modes are requested.
            RateLimitExceededError: when the organization's request window is exhausted.
            OrganizationBlockedError: if the organization is blocked.
            ReportNotAllowedError: if 296-FZ reports are disabled for the organization.
            QuotaExceededError: if the monthly report ceiling is reached.
        """
        if request.document_ids is not None and request.has_explicit_scopes:
            raise ReportValidationError(
                "documentIds and explicit scopes cannot be combined in one report"
            )
        year = parse_year(request.period)

        organization = self._organizations.find_by_id(user.organization_id)
        tier = organization.subscription_tier if organization else RateLimiter.DEFAULT_TIER
        rate_key = organization_key(user.organization_id, action="reports")
        self._rate_limiter.ensure_allowed(rate_key, tier)
        if organization is not None:
            self._quota.ensure_active(organization)
            if request.report_type is ReportType.REPORT_296FZ and not organization.can_generate_296fz:
                raise ReportNotAllowedError(
                    "296-FZ report generation is not available for this organization"
                )
        self._quota.ensure_can_create_report(organization)

        now = self._clock()
        period_start, period_end = reporting_period(year)
        report = ReportRecord(
            id=uuid.uuid4().hex,
            user_id=user.user_id,
            organization_id=user.organization_id,
            name=request.name or f"{REPORT_TITLES[request.report_type]} за {year}",
            report_type=request.report_type,
            period=str(year),
            calculation_method=CalculationMethod.AUTOMATIC,
            total_emissions=0.0,
            document_count=0,
            scope1=0.0,
            scope2=0.0,
            scope3=0.0,
            report_period_start=period_start,
            report_period_end=period_end,
            submission_deadline=submission_deadline(
                request.report_type, year, now.astimezone(self._tz).date()
            ),
        )

        if request.has_explicit_scopes:
            report = self._with_manual_scopes(
                report, request.scope1, request.scope2, request.scope3
            )
        else:
            report = self._with_aggregation(report, user, request.document_ids or None)

        created = self._reports.create(report)
        self._rate_limiter.increment_counter(rate_key)
        Log.info(
            f"Report {created.id} created",
            method=created.calculation_method.value,
            total=created.total_emissions,
            documents=created.document_count,
        )
        return created

    def get(self, report_id: str, user: UserContext) -> ReportRecord:
        return self._reports.find_by_id(report_id, user.user_id)

    def update(self, report_id: str, user: UserContext, update: ReportUpdate) -> ReportRecord:
        """Apply an explicit edit: rename, switch to manual scopes, or recalculate.

        Raises:
            ReportNotFoundError: if the caller owns no such report.
            ReportValidationError: if the edit is empty or mixes modes.
        """
        if update.has_explicit_scopes and update.recalculate:
            raise ReportValidationError("Explicit scopes and recalculate cannot be combined")
        if not update.has_explicit_scopes and not update.recalculate and update.name is None:
            raise ReportValidationError("Nothing to update")

        report = self._reports.find_by_id(report_id, user.user_id)
        if update.name is not None:
            report = dataclasses.replace(report, name=update.name)

        if update.has_explicit_scopes:
            report = self._with_manual_scopes(
                report,
                update.scope1 if update.scope1 is not None else report.scope1,
                update.scope2 if update.scope2 is not None else report.scope2,
                update.scope3 if update.scope3 is not None else report.scope3,
            )
        elif update.recalculate:
            # an empty stored selection widens to all processed documents
            document_ids = report.emission_data.get("documentIds") or None
            report = self._with_aggregation(report, user, document_ids)

        updated = self._reports.update_totals(report)
        Log.info(
            f"Report {updated.id} updated",
            method=updated.calculation_method.value,
            total=updated.total_emissions,
        )
        return updated

    def _with_aggregation(
        self,
        report: ReportRecord,
        user: UserContext,
        document_ids: list[str] | None,
    ) -> ReportRecord:
        documents = self._documents.find_processed(user.user_id, document_ids)
        totals = self._aggregator.aggregate(documents)
        emission_data: dict[str, Any] = {
            "calculationMethod": CalculationMethod.AUTOMATIC.value,
            "documentIds": [document.id for document in documents],
            "calculatedAt": self._clock().isoformat(),
            **totals.to_dict(),
        }
        return dataclasses.replace(
            report,
            calculation_method=CalculationMethod.AUTOMATIC,
            total_emissions=totals.total,
            document_count=len(documents),
            scope1=totals.scope1,
            scope2=totals.scope2,
            scope3=totals.scope3,
            emission_data=emission_data,
        )

    def _with_manual_scopes(
        self,
        report: ReportRecord,
        scope1: float | None,
        scope2: float | None,
        scope3: float | None,
    ) -> ReportRecord:
        values = (
            _non_negative("scope1", scope1),
            _non_negative("scope2", scope2),
            _non_negative("scope3", scope3),
        )
        return dataclasses.replace(
            report,
            calculation_method=CalculationMethod.MANUAL,
            total_emissions=math.fsum(values),
            document_count=0,
            scope1=values[0],
            scope2=values[1],
            scope3=values[2],
            emission_data={
                "calculationMethod": CalculationMethod.MANUAL.value,
                "scope1": values[0],
                "scope2": values[1],
                "scope3": values[2],
                "totalEmissions": math.fsum(values),
                "enteredAt": self._clock().isoformat(),
            },
        )
