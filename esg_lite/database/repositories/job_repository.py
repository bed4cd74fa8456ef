from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from esg_lite.database.connection import Database
from esg_lite.database.models import JobRecord

_COLUMNS = """
    id, name, state, priority, data, output, progress, retry_limit, retry_count,
    retry_delay, expire_in_seconds, singleton_key, start_after, started_on,
    completed_on, created_on
"""


def _to_record(row: dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=row["id"],
        name=row["name"],
        state=row["state"],
        priority=row["priority"],
        data=row["data"] or {},
        output=row["output"],
        progress=row["progress"],
        retry_limit=row["retry_limit"],
        retry_count=row["retry_count"],
        retry_delay=row["retry_delay"],
        expire_in_seconds=row["expire_in_seconds"],
        singleton_key=row["singleton_key"],
        start_after=row["start_after"],
        started_on=row["started_on"],
        completed_on=row["completed_on"],
        created_on=row["created_on"],
    )


class JobRepository:
    """Database operations for the ocr_jobs table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def insert(
        self,
        *,
        job_id: str,
        name: str,
        data: dict[str, Any],
        priority: int,
        retry_limit: int,
        retry_delay: int,
        expire_in_seconds: int,
        singleton_key: str | None,
    ) -> None:
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO ocr_jobs
                (id, name, state, priority, data, retry_limit, retry_delay,
                 expire_in_seconds, singleton_key)
                VALUES (%s, %s, 'created', %s, %s, %s, %s, %s, %s)
                """,
                (
                    job_id,
                    name,
                    priority,
                    Jsonb(data),
                    retry_limit,
                    retry_delay,
                    expire_in_seconds,
                    singleton_key,
                ),
            )
            conn.commit()

    def claim_next(self, name: str) -> JobRecord | None:
        """Claim the next due job using SELECT FOR UPDATE SKIP LOCKED."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id
                    FROM ocr_jobs
                    WHERE name = %s
                      AND state IN ('created', 'retry')
                      AND start_after <= NOW()
                    ORDER BY priority DESC, created_on
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                    """,
                    (name,),
                )
                row = cur.fetchone()
                if row is None:
                    conn.rollback()
                    return None

                cur.execute(
                    f"""
                    UPDATE ocr_jobs
                    SET state = 'active', started_on = NOW()
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (row["id"],),
                )
                claimed = cur.fetchone()
            conn.commit()

        return _to_record(claimed) if claimed else None

    def find_by_id(self, job_id: str) -> JobRecord | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM ocr_jobs WHERE id = %s",
                    (job_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _to_record(row)

    def count_in_states(self, name: str, states: tuple[str, ...]) -> int:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COUNT(*) FROM ocr_jobs WHERE name = %s AND state = ANY(%s)",
                    (name, list(states)),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def update_progress(self, job_id: str, progress: int) -> None:
        with self._db.connection() as conn:
            conn.execute(
                "UPDATE ocr_jobs SET progress = %s WHERE id = %s AND state = 'active'",
                (progress, job_id),
            )
            conn.commit()

    def complete(self, job_id: str, output: dict[str, Any]) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_jobs
                    SET state = 'completed', output = %s, progress = 100,
                        completed_on = NOW()
                    WHERE id = %s AND state = 'active'
                    """,
                    (Jsonb(output), job_id),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def fail(self, job_id: str, output: dict[str, Any], retryable: bool) -> str | None:
        """Fail an active job, rescheduling it when retries remain.

        Returns the resulting state ('retry' or 'failed'), or None when the job
        was not active.
        """
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_jobs
                    SET state = CASE WHEN %(retryable)s AND retry_count < retry_limit
                                     THEN 'retry' ELSE 'failed' END,
                        retry_count = CASE WHEN %(retryable)s AND retry_count < retry_limit
                                           THEN retry_count + 1 ELSE retry_count END,
                        start_after = CASE WHEN %(retryable)s AND retry_count < retry_limit
                                           THEN NOW() + make_interval(secs => retry_delay)
                                           ELSE start_after END,
                        completed_on = CASE WHEN %(retryable)s AND retry_count < retry_limit
                                            THEN NULL ELSE NOW() END,
                        output = %(output)s
                    WHERE id = %(job_id)s AND state = 'active'
                    RETURNING state
                    """,
                    {"retryable": retryable, "output": Jsonb(output), "job_id": job_id},
                )
                row = cur.fetchone()
            conn.commit()
        return row[0] if row else None

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not started yet."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_jobs
                    SET state = 'cancelled', completed_on = NOW()
                    WHERE id = %s AND state IN ('created', 'retry')
                    """,
                    (job_id,),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def abandon(self, job_id: str, output: dict[str, Any]) -> bool:
        """Fail a created, retrying or active job immediately, skipping retries."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_jobs
                    SET state = 'failed', output = %s, completed_on = NOW()
                    WHERE id = %s AND state IN ('created', 'retry', 'active')
                    """,
                    (Jsonb(output), job_id),
                )
                updated = cur.rowcount == 1
            conn.commit()
        return updated

    def fail_expired(self, name: str, message: str) -> int:
        """Fail active jobs that outlived their expire_in_seconds."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE ocr_jobs
                    SET state = 'failed', completed_on = NOW(), output = %s
                    WHERE name = %s AND state = 'active'
                      AND started_on < NOW() - make_interval(secs => expire_in_seconds)
                    """,
                    (Jsonb({"error": message}), name),
                )
                expired = cur.rowcount
            conn.commit()
        return expired
