from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from esg_lite.database.models import (
    CalculationMethod,
    DocumentCategory,
    DocumentRecord,
    DocumentStatus,
    OrganizationRecord,
    ReportType,
)
from esg_lite.documents.models import UserContext
from esg_lite.emissions.aggregator import EmissionAggregator
from esg_lite.quota.exceptions import (
    OrganizationBlockedError,
    QuotaExceededError,
    RateLimitExceededError,
)
from esg_lite.quota.monthly_quota import MonthlyQuotaGate
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.reports.exceptions import (
    ReportNotAllowedError,
    ReportNotFoundError,
    ReportValidationError,
)
from esg_lite.reports.models import ReportRequest, ReportUpdate
from esg_lite.reports.service import ReportService

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
MOSCOW = ZoneInfo("Europe/Moscow")
USER = UserContext(user_id="user-1", organization_id="org-1")


def _make_processed(
    document_id: str, category: DocumentCategory, ocr_data: dict[str, Any], **overrides: Any
) -> DocumentRecord:
    fields: dict[str, Any] = {
        "id": document_id,
        "user_id": "user-1",
        "organization_id": "org-1",
        "file_key": f"user-1/{document_id}.pdf",
        "file_name": f"{document_id}.pdf",
        "mime_type": "application/pdf",
        "file_size": 1024,
        "status": DocumentStatus.PROCESSED,
        "category": category,
        "ocr_processed": True,
        "ocr_data": ocr_data,
        "ocr_confidence": 0.9,
        "created_at": NOW,
    }
    fields.update(overrides)
    return DocumentRecord(**fields)


def _make_service(
    report_repo: Any,
    document_repo: Any,
    organizations: Any,
    rate_limit_store: Any,
    tier_limit: int = 12,
) -> ReportService:
    return ReportService(
        reports=report_repo,
        documents=document_repo,
        organizations=organizations,
        aggregator=EmissionAggregator(),
        quota=MonthlyQuotaGate(document_repo, report_repo, MOSCOW, clock=lambda: NOW),
        rate_limiter=RateLimiter(
            rate_limit_store,
            window_seconds=60,
            tier_limits={"FREE": tier_limit, "STANDARD": tier_limit},
            clock=lambda: NOW,
        ),
        tz=MOSCOW,
        clock=lambda: NOW,
    )


def _organizations_returning(organization: OrganizationRecord) -> MagicMock:
    organizations = MagicMock()
    organizations.find_by_id.return_value = organization
    return organizations


@pytest.fixture()
def service(
    report_repo: Any, document_repo: Any, organization_repo: Any, rate_limit_store: Any
) -> ReportService:
    document_repo.add(_make_processed("d1", DocumentCategory.TRANSPORT, {"emissions": 2.0}))
    document_repo.add(_make_processed("d2", DocumentCategory.ENERGY, {"co2": 3.0}))
    document_repo.add(
        _make_processed("d3", DocumentCategory.WASTE, {"carbon": 99.0}, inn_matches=False)
    )
    return _make_service(report_repo, document_repo, organization_repo, rate_limit_store)


class TestCreateAutomatic:
    def test_aggregates_all_processed_documents(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.REPORT_296FZ, "2024"))

        assert report.calculation_method is CalculationMethod.AUTOMATIC
        assert report.scope1 == 2.0
        assert report.scope2 == 3.0
        assert report.scope3 == 0.0
        assert report.total_emissions == 5.0
        assert report.document_count == 2
        assert report.emission_data["documentIds"] == ["d1", "d2"]
        assert report.name == "Отчет 296-ФЗ за 2024"
        assert report.submission_deadline is not None
        assert report.submission_deadline.isoformat() == "2025-07-01"

    def test_selected_documents_only(self, service: ReportService) -> None:
        report = service.create(
            USER, ReportRequest(ReportType.CBAM, "2024", name="Q1", document_ids=["d2"])
        )

        assert report.name == "Q1"
        assert report.total_emissions == 3.0
        assert report.document_count == 1

    def test_report_is_a_snapshot(self, service: ReportService, document_repo: Any) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))
        document_repo.add(_make_processed("d4", DocumentCategory.ENERGY, {"co2": 10.0}))

        assert service.get(report.id, USER).total_emissions == 5.0

    def test_rejects_bad_period(self, service: ReportService) -> None:
        with pytest.raises(ReportValidationError):
            service.create(USER, ReportRequest(ReportType.CBAM, "last year"))

    def test_rejects_mixed_modes(self, service: ReportService) -> None:
        with pytest.raises(ReportValidationError, match="cannot be combined"):
            service.create(
                USER, ReportRequest(ReportType.CBAM, "2024", document_ids=["d1"], scope1=1.0)
            )


class TestCreateManual:
    def test_explicit_scopes(self, service: ReportService) -> None:
        report = service.create(
            USER, ReportRequest(ReportType.CBAM, "2024", scope1=1.5, scope3=2.5)
        )

        assert report.calculation_method is CalculationMethod.MANUAL
        assert (report.scope1, report.scope2, report.scope3) == (1.5, 0.0, 2.5)
        assert report.total_emissions == 4.0
        assert report.document_count == 0

    def test_negative_scope_is_clamped(self, service: ReportService) -> None:
        report = service.create(
            USER, ReportRequest(ReportType.CBAM, "2024", scope1=-3.0, scope2=1.0)
        )
        assert report.scope1 == 0.0
        assert report.total_emissions == 1.0

    def test_non_finite_scope_is_rejected(self, service: ReportService) -> None:
        with pytest.raises(ReportValidationError, match="finite"):
            service.create(USER, ReportRequest(ReportType.CBAM, "2024", scope1=float("nan")))


class TestAdmission:
    def test_rate_limit_applies_per_organization(
        self, report_repo: Any, document_repo: Any, organization_repo: Any, rate_limit_store: Any
    ) -> None:
        service = _make_service(
            report_repo, document_repo, organization_repo, rate_limit_store, tier_limit=1
        )
        service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

        with pytest.raises(RateLimitExceededError):
            service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

    def test_blocked_organization(
        self,
        report_repo: Any,
        document_repo: Any,
        rate_limit_store: Any,
        organization: OrganizationRecord,
    ) -> None:
        organization.is_blocked = True
        service = _make_service(
            report_repo, document_repo, _organizations_returning(organization), rate_limit_store
        )

        with pytest.raises(OrganizationBlockedError):
            service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

    def test_296fz_disabled(
        self,
        report_repo: Any,
        document_repo: Any,
        rate_limit_store: Any,
        organization: OrganizationRecord,
    ) -> None:
        organization.can_generate_296fz = False
        service = _make_service(
            report_repo, document_repo, _organizations_returning(organization), rate_limit_store
        )

        with pytest.raises(ReportNotAllowedError):
            service.create(USER, ReportRequest(ReportType.REPORT_296FZ, "2024"))
        assert service.create(USER, ReportRequest(ReportType.CBAM, "2024")) is not None

    def test_monthly_report_quota(
        self,
        report_repo: Any,
        document_repo: Any,
        rate_limit_store: Any,
        organization: OrganizationRecord,
    ) -> None:
        organization.reports_per_month = 1
        service = _make_service(
            report_repo, document_repo, _organizations_returning(organization), rate_limit_store
        )
        service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

        with pytest.raises(QuotaExceededError):
            service.create(USER, ReportRequest(ReportType.CBAM, "2024"))


class TestUpdate:
    def test_manual_scopes_keep_unset_values(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

        updated = service.update(report.id, USER, ReportUpdate(scope2=7.0))

        assert updated.calculation_method is CalculationMethod.MANUAL
        assert (updated.scope1, updated.scope2, updated.scope3) == (2.0, 7.0, 0.0)
        assert updated.total_emissions == 9.0

    def test_recalculate_uses_stored_documents(
        self, service: ReportService, document_repo: Any
    ) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024", document_ids=["d1"]))
        document_repo.add(_make_processed("d1", DocumentCategory.TRANSPORT, {"emissions": 4.0}))
        document_repo.add(_make_processed("d4", DocumentCategory.ENERGY, {"co2": 10.0}))

        updated = service.update(report.id, USER, ReportUpdate(recalculate=True))

        assert updated.total_emissions == 4.0
        assert updated.document_count == 1

    def test_recalculate_after_empty_report_picks_up_new_documents(
        self, service: ReportService, document_repo: Any
    ) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))
        assert report.emission_data["documentIds"] == []
        document_repo.add(_make_processed("d1", DocumentCategory.TRANSPORT, {"emissions": 4.0}))

        updated = service.update(report.id, USER, ReportUpdate(recalculate=True))

        assert updated.total_emissions == 4.0
        assert updated.emission_data["documentIds"] == ["d1"]

    def test_rename_only(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))

        updated = service.update(report.id, USER, ReportUpdate(name="Final"))

        assert updated.name == "Final"
        assert updated.total_emissions == report.total_emissions

    def test_empty_update_is_rejected(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))
        with pytest.raises(ReportValidationError, match="Nothing to update"):
            service.update(report.id, USER, ReportUpdate())

    def test_scopes_with_recalculate_is_rejected(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))
        with pytest.raises(ReportValidationError):
            service.update(report.id, USER, ReportUpdate(scope1=1.0, recalculate=True))

    def test_other_users_report(self, service: ReportService) -> None:
        report = service.create(USER, ReportRequest(ReportType.CBAM, "2024"))
        with pytest.raises(ReportNotFoundError):
            service.update(report.id, UserContext("user-2", "org-1"), ReportUpdate(name="x"))
