from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from esg_lite.database.models import OrganizationRecord
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.report_repository import ReportRepository
from esg_lite.quota.exceptions import OrganizationBlockedError, QuotaExceededError


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MonthlyQuotaGate:
    """Hard per-organization ceilings on documents and reports per calendar month.

    A limit of zero means unlimited. There is no fail-open path here: a store
    error propagates and the request is rejected.
    """

    def __init__(
        self,
        documents: DocumentRepository,
        reports: ReportRepository,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._documents = documents
        self._reports = reports
        self._tz = tz
        self._clock = clock

    def month_start(self) -> datetime:
        local_now = self._clock().astimezone(self._tz)
        return local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    def ensure_can_upload(self, organization: OrganizationRecord | None) -> None:
        if organization is None:
            return
        self.ensure_active(organization)
        limit = organization.documents_per_month
        if limit <= 0:
            return
        used = self._documents.count_created_since(organization.id, self.month_start())
        if used >= limit:
            raise QuotaExceededError(
                f"Monthly document limit reached ({used}/{limit})"
            )

    def ensure_can_create_report(self, organization: OrganizationRecord | None) -> None:
        if organization is None:
            return
        self.ensure_active(organization)
        limit = organization.reports_per_month
        if limit <= 0:
            return
        used = self._reports.count_created_since(organization.id, self.month_start())
        if used >= limit:
            raise QuotaExceededError(
                f"Monthly report limit reached ({used}/{limit})"
            )

    @staticmethod
    def ensure_active(organization: OrganizationRecord) -> None:
        if organization.is_blocked:
            raise OrganizationBlockedError(f"Organization {organization.id} is blocked")
