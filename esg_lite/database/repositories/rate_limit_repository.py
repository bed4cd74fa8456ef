from datetime import datetime

from esg_lite.database.connection import Database


class RateLimitRepository:
    """Per-key request counters bucketed by fixed window start."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def current_count(self, key: str, window_start: datetime) -> int:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT request_count FROM rate_limits
                    WHERE key = %s AND window_start = %s
                    """,
                    (key, window_start),
                )
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def increment(self, key: str, window_start: datetime) -> int:
        """Atomically add one request to the window and return the new count."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO rate_limits (key, window_start, request_count, updated_at)
                    VALUES (%s, %s, 1, NOW())
                    ON CONFLICT (key, window_start)
                    DO UPDATE SET request_count = rate_limits.request_count + 1,
                                  updated_at = NOW()
                    RETURNING request_count
                    """,
                    (key, window_start),
                )
                row = cur.fetchone()
            conn.commit()
        return int(row[0]) if row else 0

    def delete_older_than(self, cutoff: datetime) -> int:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM rate_limits WHERE window_start < %s",
                    (cutoff,),
                )
                deleted = cur.rowcount
            conn.commit()
        return deleted
