import os
import uuid
from collections.abc import Callable, Generator
from datetime import datetime

import psycopg
import pytest

from esg_lite.config.settings import Settings
from esg_lite.database.connection import Database, build_conninfo
from esg_lite.database.models import DocumentCategory, DocumentRecord, OrganizationRecord
from esg_lite.database.repositories.document_repository import DocumentRepository
from esg_lite.documents.models import NewDocument

TABLES = ("documents", "ocr_jobs", "reports", "rate_limits", "organizations")


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "esg_lite_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def db(test_settings: Settings) -> Generator[Database, None, None]:
    try:
        psycopg.connect(build_conninfo(test_settings), connect_timeout=3).close()
    except psycopg.Error as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    database = Database(test_settings)
    database.open()
    database.apply_schema()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture(autouse=True)
def clean_tables(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    if "db" not in request.fixturenames:
        yield
        return
    database: Database = request.getfixturevalue("db")
    yield
    with database.connection() as conn:
        conn.execute(f"TRUNCATE {', '.join(TABLES)}")
        conn.commit()


@pytest.fixture
def seed_organization(db: Database) -> OrganizationRecord:
    organization = OrganizationRecord(
        id=f"org-{uuid.uuid4().hex[:8]}",
        inn="7707083893",
        name="ООО Ромашка",
        subscription_tier="STANDARD",
    )
    with db.connection() as conn:
        conn.execute(
            """
            INSERT INTO organizations (id, inn, name, subscription_tier)
            VALUES (%s, %s, %s, %s)
            """,
            (organization.id, organization.inn, organization.name, organization.subscription_tier),
        )
        conn.commit()
    return organization


@pytest.fixture
def seed_document(db: Database, seed_organization: OrganizationRecord) -> DocumentRecord:
    document_id = uuid.uuid4().hex
    return DocumentRepository(db).create(
        NewDocument(
            id=document_id,
            user_id="user-1",
            organization_id=seed_organization.id,
            file_key=f"user-1/{document_id}.pdf",
            file_name="waybill.pdf",
            mime_type="application/pdf",
            file_size=2048,
            category=DocumentCategory.TRANSPORT,
        )
    )


@pytest.fixture
def backdate_document(db: Database) -> Callable[[str, datetime], None]:
    """Set a document's updated_at, simulating a worker that stopped reporting."""

    def _backdate(document_id: str, when: datetime) -> None:
        with db.connection() as conn:
            conn.execute(
                "UPDATE documents SET updated_at = %s WHERE id = %s", (when, document_id)
            )
            conn.commit()

    return _backdate
