from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from esg_lite.config.settings import Settings
from esg_lite.database.connection import Database
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.database.repositories.rate_limit_repository import RateLimitRepository
from esg_lite.database.repositories.report_repository import ReportRepository
from esg_lite.documents.service import DocumentService
from esg_lite.documents.storage import FileStorage
from esg_lite.emissions.aggregator import EmissionAggregator
from esg_lite.maintenance.stale_sweeper import StaleDocumentSweeper
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.factory import JobQueueFactory
from esg_lite.queue.surge import SurgeSchedule
from esg_lite.quota.monthly_quota import MonthlyQuotaGate
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.reports.service import ReportService
from esg_lite.status.reconciliation import StatusReconciler
from esg_lite.submission.service import OcrSubmissionService


@dataclass
class Container:
    """Services shared by the HTTP handlers of one process."""

    settings: Settings
    queue: BaseJobQueue
    documents: DocumentService
    submissions: OcrSubmissionService
    status: StatusReconciler
    reports: ReportService
    database: Database | None = None

    def close(self) -> None:
        self.queue.close()
        if self.database is not None:
            self.database.close()


def build_container(settings: Settings, db: Database | None = None) -> Container:
    """Open the database pool and wire every service of the API process."""
    if db is None:
        db = Database(settings)
        db.open()

    tz = ZoneInfo(settings.timezone)
    documents = DocumentRepository(db)
    organizations = OrganizationRepository(db)
    reports = ReportRepository(db)
    queue = JobQueueFactory.create(settings, db)
    surge = SurgeSchedule.from_settings(settings)
    rate_limiter = RateLimiter.from_settings(settings, RateLimitRepository(db), surge)
    quota = MonthlyQuotaGate(documents, reports, tz)
    sweeper = StaleDocumentSweeper(documents, queue, settings.stale_processing_minutes)

    return Container(
        settings=settings,
        queue=queue,
        documents=DocumentService(
            documents,
            organizations,
            FileStorage(Path(settings.files_root)),
            quota,
            settings.max_upload_bytes,
        ),
        submissions=OcrSubmissionService(
            documents, organizations, queue, rate_limiter, surge, sweeper
        ),
        status=StatusReconciler(documents, queue),
        reports=ReportService(
            reports,
            documents,
            organizations,
            EmissionAggregator(settings.low_confidence_threshold),
            quota,
            rate_limiter,
            tz,
        ),
        database=db,
    )
