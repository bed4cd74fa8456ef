from datetime import UTC, datetime
from typing import Any

from esg_lite.ocr.models import OcrResult

TEXT_PREVIEW_CHARS = 200


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def success_payload(
    result: OcrResult,
    extracted_data: dict[str, Any] | None = None,
    processed_at: str | None = None,
) -> dict[str, Any]:
    """ocrData stored with a PROCESSED document."""
    payload: dict[str, Any] = {
        "fullText": result.text,
        "textPreview": result.text[:TEXT_PREVIEW_CHARS],
        "textLength": len(result.text),
        "processedAt": processed_at or _now_iso(),
        "provider": result.provider,
        "confidence": result.confidence,
        "processingTime": result.processing_time_ms,
        "metadata": result.metadata,
    }
    if extracted_data:
        payload["extractedData"] = extracted_data
    return payload


def failure_payload(
    message: str,
    error_type: str,
    retryable: bool,
    processed_at: str | None = None,
) -> dict[str, Any]:
    """ocrData stored with a FAILED document."""
    return {
        "error": message,
        "errorType": error_type,
        "retryable": retryable,
        "processedAt": processed_at or _now_iso(),
    }
