from datetime import datetime
from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from esg_lite.database.connection import Database
from esg_lite.database.models import DocumentCategory, DocumentRecord, DocumentStatus
from esg_lite.documents.exceptions import DocumentNotFoundError
from esg_lite.documents.models import NewDocument

_COLUMNS = """
    id, user_id, organization_id, file_key, file_name, mime_type, file_size,
    category, status, processing_progress, processing_stage, processing_message,
    job_id, ocr_processed, ocr_data, ocr_confidence, extracted_inn, inn_matches,
    processing_started_at, processing_completed_at, created_at, updated_at
"""


def _to_record(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        user_id=row["user_id"],
        organization_id=row["organization_id"],
        file_key=row["file_key"],
        file_name=row["file_name"],
        mime_type=row["mime_type"],
        file_size=row["file_size"],
        category=DocumentCategory.parse(row["category"]),
        status=DocumentStatus(row["status"]),
        processing_progress=row["processing_progress"],
        processing_stage=row["processing_stage"],
        processing_message=row["processing_message"],
        job_id=row["job_id"],
        ocr_processed=row["ocr_processed"],
        ocr_data=row["ocr_data"],
        ocr_confidence=row["ocr_confidence"],
        extracted_inn=row["extracted_inn"],
        inn_matches=row["inn_matches"],
        processing_started_at=row["processing_started_at"],
        processing_completed_at=row["processing_completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class DocumentRepository:
    """Database operations for the documents table.

    Every lifecycle transition is a single conditional UPDATE. Methods that
    return bool report whether the expected prior state still held.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(self, document: NewDocument) -> DocumentRecord:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                    (id, user_id, organization_id, file_key, file_name, mime_type,
                     file_size, category, status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'UPLOADED')
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document.id,
                        document.user_id,
                        document.organization_id,
                        document.file_key,
                        document.file_name,
                        document.mime_type,
                        document.file_size,
                        document.category.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        assert row is not None
        return _to_record(row)

    def find_by_id(self, document_id: str, user_id: str | None = None) -> DocumentRecord:
        """Find a document, optionally scoped to its owner.

        Raises:
            DocumentNotFoundError: if no matching document exists.
        """
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE id = %s
                      AND (%s::text IS NULL OR user_id = %s)
                    """,
                    (document_id, user_id, user_id),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _to_record(row)

    def mark_queued(
        self,
        document_id: str,
        job_id: str,
        expected_status: DocumentStatus,
        message: str,
    ) -> bool:
        """Compare-and-set the document to QUEUED with its new job id."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'QUEUED', job_id = %s, ocr_processed = FALSE,
                        processing_progress = 0, processing_stage = 'queued',
                        processing_message = %s, updated_at = NOW()
                    WHERE id = %s AND status = %s
                    """,
                    (job_id, message, document_id, expected_status.value),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_processing(self, document_id: str, job_id: str) -> bool:
        """Claim the document for a worker holding ``job_id``."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'PROCESSING', processing_stage = 'starting',
                        processing_started_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND job_id = %s
                      AND status IN ('QUEUED', 'PROCESSING')
                    """,
                    (document_id, job_id),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def update_progress(
        self,
        document_id: str,
        job_id: str,
        progress: int,
        stage: str,
        message: str,
    ) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_progress = %s, processing_stage = %s,
                        processing_message = %s, updated_at = NOW()
                    WHERE id = %s AND job_id = %s AND status = 'PROCESSING'
                    """,
                    (progress, stage, message, document_id, job_id),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_processed(
        self,
        document_id: str,
        job_id: str,
        ocr_data: dict[str, Any],
        confidence: float,
        extracted_inn: str | None,
        inn_matches: bool | None,
    ) -> bool:
        """Persist a successful extraction in one statement."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'PROCESSED', ocr_processed = TRUE, ocr_data = %s,
                        ocr_confidence = %s, extracted_inn = %s, inn_matches = %s,
                        processing_progress = 100, processing_stage = 'completed',
                        processing_message = 'OCR processing completed',
                        processing_completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND job_id = %s AND status = 'PROCESSING'
                    """,
                    (
                        Jsonb(ocr_data),
                        confidence,
                        extracted_inn,
                        inn_matches,
                        document_id,
                        job_id,
                    ),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_retry_scheduled(self, document_id: str, job_id: str, message: str) -> bool:
        """Return a PROCESSING document to QUEUED while its job waits for a retry."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'QUEUED', processing_stage = 'retry_scheduled',
                        processing_message = %s, updated_at = NOW()
                    WHERE id = %s AND job_id = %s AND status = 'PROCESSING'
                    """,
                    (message, document_id, job_id),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_failed(
        self,
        document_id: str,
        ocr_data: dict[str, Any],
        stage: str,
        *,
        expected_status: DocumentStatus,
        job_id: str | None = None,
    ) -> bool:
        """Move a document to FAILED, carrying the error payload in ocr_data."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'FAILED', ocr_processed = FALSE, ocr_data = %s,
                        ocr_confidence = NULL, processing_stage = %s,
                        processing_message = %s,
                        processing_completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND status = %s
                      AND (%s::text IS NULL OR job_id = %s)
                    """,
                    (
                        Jsonb(ocr_data),
                        stage,
                        ocr_data.get("error"),
                        document_id,
                        expected_status.value,
                        job_id,
                        job_id,
                    ),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def mark_stale_failed(
        self,
        document_id: str,
        ocr_data: dict[str, Any],
        cutoff: datetime,
    ) -> bool:
        """Fail a PROCESSING document that has not been touched since ``cutoff``."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'FAILED', ocr_processed = FALSE, ocr_data = %s,
                        processing_stage = 'stale_timeout', processing_message = %s,
                        processing_completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND status = 'PROCESSING' AND updated_at < %s
                    """,
                    (Jsonb(ocr_data), ocr_data.get("error"), document_id, cutoff),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def requeue_for_reprocess(
        self,
        document_id: str,
        job_id: str,
        expected_status: DocumentStatus,
        expected_updated_at: datetime | None,
        message: str,
    ) -> bool:
        """Clear previous OCR output and queue the document under a new job.

        Nothing changes unless the row still has the status and updated_at
        the caller read.
        """
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET status = 'QUEUED', job_id = %s, ocr_processed = FALSE,
                        ocr_data = NULL, ocr_confidence = NULL, extracted_inn = NULL,
                        inn_matches = NULL, processing_progress = 0,
                        processing_stage = 'queued', processing_message = %s,
                        processing_started_at = NULL, processing_completed_at = NULL,
                        updated_at = NOW()
                    WHERE id = %s AND status = %s
                      AND updated_at IS NOT DISTINCT FROM %s
                    """,
                    (job_id, message, document_id, expected_status.value, expected_updated_at),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def find_processed(
        self,
        user_id: str,
        document_ids: list[str] | None = None,
    ) -> list[DocumentRecord]:
        """Processed documents eligible for reporting.

        Documents whose counterparty INN was found not to match the
        organization are excluded; unknown matches are kept.
        """
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE user_id = %s
                      AND status = 'PROCESSED'
                      AND ocr_processed
                      AND (inn_matches IS NULL OR inn_matches)
                      AND (%s::text[] IS NULL OR id = ANY(%s::text[]))
                    ORDER BY created_at, id
                    """,
                    (user_id, document_ids, document_ids),
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def find_stale_processing(self, cutoff: datetime) -> list[DocumentRecord]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE status = 'PROCESSING' AND updated_at < %s
                    ORDER BY updated_at
                    """,
                    (cutoff,),
                )
                rows = cur.fetchall()
        return [_to_record(row) for row in rows]

    def count_created_since(self, organization_id: str, since: datetime) -> int:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT COUNT(*) FROM documents
                    WHERE organization_id = %s AND created_at >= %s
                    """,
                    (organization_id, since),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0
