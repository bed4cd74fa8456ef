from esg_lite.config.settings import Settings
from esg_lite.database.connection import Database
from esg_lite.database.repositories.job_repository import JobRepository
from esg_lite.queue.base import BaseJobQueue
from esg_lite.queue.memory_queue import InMemoryJobQueue
from esg_lite.queue.postgres_queue import PostgresJobQueue


class JobQueueFactory:
    """Creates the configured job queue backend."""

    BACKENDS: tuple[str, ...] = ("postgres", "memory")

    @classmethod
    def create(cls, settings: Settings, db: Database | None) -> BaseJobQueue:
        backend = settings.queue_backend.lower()
        if backend == "memory":
            return InMemoryJobQueue(
                retry_limit=settings.ocr_retry_limit,
                retry_delay_seconds=settings.ocr_retry_delay_seconds,
                expire_in_seconds=settings.ocr_expire_in_seconds,
                max_waiting=settings.queue_max_waiting,
            )
        if backend == "postgres":
            if db is None:
                raise ValueError("queue_backend=postgres requires a database")
            return PostgresJobQueue(JobRepository(db), settings)
        raise ValueError(
            f"Unknown queue backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
