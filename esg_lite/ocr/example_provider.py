"""Example OCR provider.

Use this module as a reference when implementing new provider adapters.
Implement BaseOcrProvider and register the provider in OcrProviderFactory.
"""

from esg_lite.ocr.base import BaseOcrProvider
from esg_lite.ocr.models import OcrResult


class ExampleOcrProvider(BaseOcrProvider):
    """Returns a fixed recognised text without any network calls.

    Useful for local development and tests.
    """

    name = "example"

    DEFAULT_TEXT = (
        "Транспортная накладная № 17\n"
        "Грузоотправитель: ООО Ромашка ИНН 7707083893\n"
        "Автомобиль: КАМАЗ 65115 А123ВС77\n"
        "Маршрут: Москва → Тверь\n"
        "Масса груза: 10 т\n"
    )

    def __init__(self, text: str = DEFAULT_TEXT, confidence: float = 0.95) -> None:
        self._text = text
        self._confidence = confidence

    def recognize(self, content: bytes, mime_type: str) -> OcrResult:
        return OcrResult(
            text=self._text,
            confidence=self._confidence,
            provider=self.name,
            metadata={"mimeType": mime_type, "inputBytes": len(content)},
        )
