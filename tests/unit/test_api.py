from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from esg_lite.api.app import create_app
from esg_lite.config.settings import Settings
from esg_lite.container import Container
from esg_lite.database.models import DocumentStatus
from esg_lite.documents.service import DocumentService
from esg_lite.documents.storage import FileStorage
from esg_lite.emissions.aggregator import EmissionAggregator
from esg_lite.maintenance.stale_sweeper import StaleDocumentSweeper
from esg_lite.ocr.models import OcrResult
from esg_lite.queue.exceptions import QueueUnavailableError
from esg_lite.queue.memory_queue import InMemoryJobQueue
from esg_lite.queue.surge import SurgeSchedule
from esg_lite.quota.monthly_quota import MonthlyQuotaGate
from esg_lite.quota.rate_limiter import RateLimiter
from esg_lite.reports.service import ReportService
from esg_lite.status.reconciliation import StatusReconciler
from esg_lite.submission.service import OcrSubmissionService
from esg_lite.worker.job_runner import JobRunner
from esg_lite.worker.processor import ProcessingOutcome
from esg_lite.worker.results import success_payload

MOSCOW = ZoneInfo("Europe/Moscow")
HEADERS = {"X-User-Id": "user-1", "X-Organization-Id": "org-1"}
TWO_MB_PDF = b"%PDF-1.4\n" + b"0" * (2 * 1024 * 1024)


@dataclass
class ApiHarness:
    client: TestClient
    container: Container
    queue: InMemoryJobQueue
    documents: Any


def _make_container(
    tmp_path: Path,
    document_repo: Any,
    organization_repo: Any,
    report_repo: Any,
    rate_limit_store: Any,
    tier_limit: int = 12,
) -> tuple[Container, InMemoryJobQueue]:
    queue = InMemoryJobQueue()
    surge = SurgeSchedule([], MOSCOW)
    rate_limiter = RateLimiter(
        rate_limit_store,
        window_seconds=60,
        tier_limits={"FREE": tier_limit, "STANDARD": tier_limit},
    )
    quota = MonthlyQuotaGate(document_repo, report_repo, MOSCOW)
    sweeper = StaleDocumentSweeper(document_repo, queue, stale_after_minutes=30)
    container = Container(
        settings=Settings(),
        queue=queue,
        documents=DocumentService(
            document_repo, organization_repo, FileStorage(tmp_path), quota, 50 * 1024 * 1024
        ),
        submissions=OcrSubmissionService(
            document_repo, organization_repo, queue, rate_limiter, surge, sweeper
        ),
        status=StatusReconciler(document_repo, queue),
        reports=ReportService(
            report_repo,
            document_repo,
            organization_repo,
            EmissionAggregator(),
            quota,
            rate_limiter,
            MOSCOW,
        ),
    )
    return container, queue


@pytest.fixture()
def api(
    tmp_path: Path,
    document_repo: Any,
    organization_repo: Any,
    report_repo: Any,
    rate_limit_store: Any,
) -> ApiHarness:
    container, queue = _make_container(
        tmp_path, document_repo, organization_repo, report_repo, rate_limit_store
    )
    return ApiHarness(
        client=TestClient(create_app(container)),
        container=container,
        queue=queue,
        documents=document_repo,
    )


def _upload(client: TestClient, content: bytes = TWO_MB_PDF, category: str = "TRANSPORT") -> str:
    response = client.post(
        "/documents",
        files={"file": ("waybill.pdf", content, "application/pdf")},
        data={"category": category},
        headers=HEADERS,
    )
    assert response.status_code == 201, response.text
    return str(response.json()["data"]["documentId"])


class TestOcrLifecycle:
    def test_upload_submit_process_and_read_status(self, api: ApiHarness) -> None:
        document_id = _upload(api.client)

        submitted = api.client.post("/ocr", json={"documentId": document_id}, headers=HEADERS)
        assert submitted.status_code == 200
        body = submitted.json()["data"]
        assert body["status"] == "queued"
        job_id = body["jobId"]
        assert job_id
        assert api.documents.rows[document_id].job_id == job_id

        job = api.queue.claim_next()
        assert job is not None and job.id == job_id
        assert api.documents.mark_processing(document_id, job.id)

        second = api.client.post("/ocr", json={"documentId": document_id}, headers=HEADERS)
        assert second.status_code == 409
        assert second.json()["code"] == "DOCUMENT_BUSY"
        assert second.json()["details"]["jobId"] == job_id

        processor = MagicMock()
        processor.process.return_value = ProcessingOutcome(
            ocr_data=success_payload(
                OcrResult(text="т" * 1200, confidence=0.94, provider="yandex_vision")
            ),
            confidence=0.94,
            extracted_inn=None,
            inn_matches=None,
        )
        JobRunner(processor, api.documents, api.queue).run(job)

        status = api.client.get("/ocr", params={"documentId": document_id}, headers=HEADERS)
        assert status.status_code == 200
        data = status.json()["data"]
        assert data["status"] == "completed"
        assert data["progress"] == 100
        assert data["ocrResults"]["confidence"] == 0.94
        assert data["ocrResults"]["textLength"] == 1200

        by_job = api.client.get("/ocr", params={"jobId": job_id}, headers=HEADERS)
        assert by_job.json()["data"]["status"] == "completed"

    def test_reprocess_returns_estimated_time(self, api: ApiHarness) -> None:
        document_id = _upload(api.client)
        api.documents.rows[document_id].status = DocumentStatus.FAILED

        response = api.client.post(
            "/ocr/reprocess", json={"documentId": document_id}, headers=HEADERS
        )

        assert response.status_code == 200
        assert response.json()["data"]["estimatedTime"] == 45

    def test_status_requires_a_parameter(self, api: ApiHarness) -> None:
        response = api.client.get("/ocr", headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["code"] == "MISSING_PARAMETERS"

    def test_unknown_document(self, api: ApiHarness) -> None:
        response = api.client.post("/ocr", json={"documentId": "missing"}, headers=HEADERS)
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "Document missing not found",
            "code": "DOCUMENT_NOT_FOUND",
        }

    def test_unknown_job(self, api: ApiHarness) -> None:
        response = api.client.get("/ocr", params={"jobId": "nope"}, headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["code"] == "JOB_NOT_FOUND"

    def test_malformed_body(self, api: ApiHarness) -> None:
        response = api.client.post("/ocr", json={}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestErrorMapping:
    def test_missing_identity(self, api: ApiHarness) -> None:
        response = api.client.get("/ocr", params={"documentId": "doc-1"})
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_queue_outage_on_submit(self, api: ApiHarness) -> None:
        document_id = _upload(api.client)
        api.queue.enqueue = MagicMock(  # type: ignore[method-assign]
            side_effect=QueueUnavailableError("Queue service temporarily unavailable")
        )

        response = api.client.post("/ocr", json={"documentId": document_id}, headers=HEADERS)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert response.json()["code"] == "QUEUE_UNAVAILABLE"
        assert response.json()["retryable"] is True
        assert api.documents.rows[document_id].status is DocumentStatus.FAILED

    def test_rate_limit(
        self,
        tmp_path: Path,
        document_repo: Any,
        organization_repo: Any,
        report_repo: Any,
        rate_limit_store: Any,
    ) -> None:
        container, _queue = _make_container(
            tmp_path, document_repo, organization_repo, report_repo, rate_limit_store, tier_limit=1
        )
        client = TestClient(create_app(container))
        first = _upload(client)
        second = _upload(client)
        client.post("/ocr", json={"documentId": first}, headers=HEADERS)

        response = client.post("/ocr", json={"documentId": second}, headers=HEADERS)

        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert response.headers["X-RateLimit-Limit"] == "1"
        assert int(response.headers["Retry-After"]) >= 1

    def test_unsupported_upload(self, api: ApiHarness) -> None:
        response = api.client.post(
            "/documents",
            files={"file": ("notes.txt", b"plain text", "text/plain")},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "UPLOAD_REJECTED"

    def test_unexpected_error_is_hidden(self, api: ApiHarness) -> None:
        api.container.status = MagicMock()
        api.container.status.resolve_status.side_effect = RuntimeError("secret detail")
        client = TestClient(create_app(api.container), raise_server_exceptions=False)

        response = client.get("/ocr", params={"documentId": "doc-1"}, headers=HEADERS)

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        assert "secret" not in response.text


class TestDocuments:
    def test_get_document(self, api: ApiHarness) -> None:
        document_id = _upload(api.client, category="energy")

        response = api.client.get(f"/documents/{document_id}", headers=HEADERS)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "UPLOADED"
        assert data["category"] == "ENERGY"
        assert data["fileSize"] == len(TWO_MB_PDF)


class TestReports:
    def test_create_get_and_update(self, api: ApiHarness) -> None:
        created = api.client.post(
            "/reports",
            json={"reportType": "CBAM", "period": "2024", "scope1": 1.5},
            headers=HEADERS,
        )
        assert created.status_code == 201
        report = created.json()["data"]
        assert report["calculationMethod"] == "manual_input"
        assert report["totalEmissions"] == 1.5

        fetched = api.client.get(f"/reports/{report['id']}", headers=HEADERS)
        assert fetched.json()["data"]["id"] == report["id"]

        updated = api.client.patch(
            f"/reports/{report['id']}", json={"scope2": 2.0}, headers=HEADERS
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["totalEmissions"] == 3.5

    def test_invalid_report_type(self, api: ApiHarness) -> None:
        response = api.client.post(
            "/reports", json={"reportType": "ESG", "period": "2024"}, headers=HEADERS
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_report(self, api: ApiHarness) -> None:
        response = api.client.get("/reports/none", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["code"] == "REPORT_NOT_FOUND"


class TestHealth:
    def test_queue_up(self, api: ApiHarness) -> None:
        response = api.client.get("/health/ocr")
        assert response.status_code == 200
        assert response.json()["data"] == {"queue": "up", "waiting": 0}

    def test_queue_down(self, api: ApiHarness) -> None:
        api.queue.waiting_count = MagicMock(  # type: ignore[method-assign]
            side_effect=QueueUnavailableError("pool timeout")
        )

        response = api.client.get("/health/ocr")

        assert response.status_code == 503
        assert response.json()["details"] == {"queue": "down"}
