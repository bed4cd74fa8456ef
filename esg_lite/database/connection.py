from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from esg_lite.config.settings import Settings

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Owns the process-wide connection pool.

    Created once at startup and handed to every repository; closed on shutdown.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: ConnectionPool | None = None

    def open(self) -> None:
        """Open the connection pool. Safe to call more than once."""
        if self._pool is not None:
            return
        self._pool = ConnectionPool(
            build_conninfo(self._settings),
            min_size=self._settings.db_pool_min_size,
            max_size=self._settings.db_pool_max_size,
            open=True,
        )

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection from the pool. Caller manages commit/rollback."""
        if self._pool is None:
            raise RuntimeError("Database pool not opened. Call Database.open() first.")
        with self._pool.connection() as conn:
            yield conn

    def apply_schema(self) -> None:
        """Create tables and indexes from the bundled schema.sql."""
        ddl = SCHEMA_PATH.read_text(encoding="utf-8")
        with self.connection() as conn:
            conn.execute(ddl)
            conn.commit()
