import base64
import time
from typing import Any, ClassVar

import httpx

from esg_lite.ocr.base import BaseOcrProvider
from esg_lite.ocr.exceptions import OcrPermanentError, OcrTransientError
from esg_lite.ocr.formats import JPEG, PDF, PNG, detect_mime_type
from esg_lite.ocr.models import OcrResult


class YandexVisionAdapter(BaseOcrProvider):
    """Text detection through the Yandex Cloud Vision batchAnalyze API."""

    name = "yandex_vision"

    SUPPORTED_MIME_TYPES: ClassVar[frozenset[str]] = frozenset({JPEG, PNG, PDF})
    MAX_FILE_BYTES: ClassVar[int] = 20 * 1024 * 1024
    LANGUAGE_CODES: ClassVar[list[str]] = ["ru", "en"]

    def __init__(
        self,
        *,
        folder_id: str,
        url: str,
        timeout_seconds: int,
        api_key: str = "",
        iam_token: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key and not iam_token:
            raise ValueError("Yandex Vision requires yandex_vision_api_key or yandex_iam_token")
        self._folder_id = folder_id
        self._url = url
        self._auth_header = f"Api-Key {api_key}" if api_key else f"Bearer {iam_token}"
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def recognize(self, content: bytes, mime_type: str) -> OcrResult:
        detected = detect_mime_type(content, mime_type)
        if detected not in self.SUPPORTED_MIME_TYPES:
            raise OcrPermanentError(
                f"Yandex Vision does not support {detected}", error_type="unsupported_format"
            )
        if len(content) > self.MAX_FILE_BYTES:
            raise OcrPermanentError(
                f"File of {len(content)} bytes exceeds Yandex Vision limit",
                error_type="file_too_large",
            )

        started = time.monotonic()
        payload = self._post(self._build_request(content, detected))
        text, confidence, word_count = self._parse_response(payload)
        return OcrResult(
            text=text,
            confidence=confidence,
            provider=self.name,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            metadata={"wordCount": word_count, "mimeType": detected},
        )

    def _build_request(self, content: bytes, mime_type: str) -> dict[str, Any]:
        return {
            "folderId": self._folder_id,
            "analyze_specs": [
                {
                    "content": base64.b64encode(content).decode("ascii"),
                    "features": [
                        {
                            "type": "TEXT_DETECTION",
                            "text_detection_config": {"language_codes": self.LANGUAGE_CODES},
                        }
                    ],
                    "mime_type": mime_type,
                }
            ],
        }

    def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(
                self._url,
                json=body,
                headers={"Authorization": self._auth_header},
            )
        except httpx.TimeoutException as exc:
            raise OcrTransientError(f"Yandex Vision timed out: {exc}", error_type="timeout") from exc
        except httpx.TransportError as exc:
            raise OcrTransientError(f"Yandex Vision request failed: {exc}") from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise OcrTransientError(
                f"Yandex Vision returned HTTP {response.status_code}: {response.text[:200]}"
            )
        if response.status_code >= 400:
            raise OcrPermanentError(
                f"Yandex Vision rejected the request with HTTP {response.status_code}: "
                f"{response.text[:200]}",
                error_type="provider_error",
            )
        try:
            data: dict[str, Any] = response.json()
        except ValueError as exc:
            raise OcrTransientError(f"Failed to parse Yandex Vision response: {exc}") from exc
        return data

    @staticmethod
    def _parse_response(payload: dict[str, Any]) -> tuple[str, float, int]:
        """Join words line by line and average their confidence."""
        try:
            detection = payload["results"][0]["results"][0]["textDetection"]
        except (KeyError, IndexError, TypeError):
            return "", 0.0, 0

        lines: list[str] = []
        confidences: list[float] = []
        for page in detection.get("pages") or []:
            for block in page.get("blocks") or []:
                for line in block.get("lines") or []:
                    words = [
                        word
                        for word in line.get("words") or []
                        if word.get("text") and word.get("confidence") is not None
                    ]
                    if not words:
                        continue
                    lines.append(" ".join(word["text"] for word in words))
                    confidences.extend(float(word["confidence"]) for word in words)

        if not confidences:
            return "", 0.0, 0
        average = sum(confidences) / len(confidences)
        return "\n".join(lines).strip(), min(max(average, 0.0), 1.0), len(confidences)
