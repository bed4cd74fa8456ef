from pathlib import Path

from esg_lite.config.settings import Settings
from esg_lite.database.connection import Database
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.database.repositories.organization_repository import OrganizationRepository
from esg_lite.database.repositories.rate_limit_repository import RateLimitRepository
from esg_lite.documents.storage import FileStorage
from esg_lite.logging.logger import Log
from esg_lite.maintenance.stale_sweeper import StaleDocumentSweeper
from esg_lite.ocr.factory import OcrProviderFactory
from esg_lite.queue.factory import JobQueueFactory
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.transport.factory import TransportAnalyzerFactory
from esg_lite.worker.job_runner import JobRunner
from esg_lite.worker.processor import OcrProcessor
from esg_lite.worker.worker import Worker


def build_worker(settings: Settings, db: Database) -> Worker:
    """Build a Worker with all required adapters."""
    documents = DocumentRepository(db)
    organizations = OrganizationRepository(db)
    queue = JobQueueFactory.create(settings, db)
    processor = OcrProcessor(
        storage=FileStorage(Path(settings.files_root)),
        ocr_provider=OcrProviderFactory.create(settings),
        transport_analyzer=TransportAnalyzerFactory.create(settings),
        organizations=organizations,
        min_text_chars=settings.ocr_min_text_chars,
    )
    job_runner = JobRunner(processor, documents, queue)
    sweeper = StaleDocumentSweeper(
        documents,
        queue,
        settings.stale_processing_minutes,
        rate_limiter=RateLimiter.from_settings(settings, RateLimitRepository(db)),
    )
    return Worker(queue, job_runner, sweeper, settings)


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    db = Database(settings)
    db.open()

    try:
        worker = build_worker(settings, db)
        worker.install_signal_handlers()
        worker.run()
    finally:
        db.close()


def sweep() -> None:
    """Entry point: run one stale-document sweep and exit."""
    settings = Settings()
    Log.configure(settings.log_level)
    db = Database(settings)
    db.open()

    try:
        documents = DocumentRepository(db)
        queue = JobQueueFactory.create(settings, db)
        result = StaleDocumentSweeper(
            documents,
            queue,
            settings.stale_processing_minutes,
            rate_limiter=RateLimiter.from_settings(settings, RateLimitRepository(db)),
        ).sweep()
        Log.info(
            "Sweep complete",
            documents_failed=result.documents_failed,
            jobs_expired=result.jobs_expired,
            jobs_abandoned=result.jobs_abandoned,
            rate_windows_removed=result.rate_windows_removed,
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
