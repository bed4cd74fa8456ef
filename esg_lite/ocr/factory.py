from esg_lite.config.settings import Settings
from esg_lite.logging.logger import Log
from esg_lite.ocr.base import BaseOcrProvider
from esg_lite.ocr.example_provider import ExampleOcrProvider
from esg_lite.ocr.hybrid_provider import HybridOcrProvider
from esg_lite.ocr.pdf_text_layer import TextLayerExtractorFactory
from esg_lite.ocr.yandex_vision_adapter import YandexVisionAdapter


class OcrProviderFactory:
    """Creates the OCR provider selected by ``ocr_provider``."""

    PROVIDERS: tuple[str, ...] = ("hybrid", "yandex_vision", "pdf_text", "example")

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrProvider:
        provider = settings.ocr_provider.lower()
        if provider == "example":
            return ExampleOcrProvider()
        if provider == "yandex_vision":
            return cls._vision(settings)
        if provider == "pdf_text":
            return HybridOcrProvider(
                text_layer=TextLayerExtractorFactory.create(settings),
                vision=None,
                min_text_chars=settings.pdf_min_text_chars,
            )
        if provider == "hybrid":
            vision = None
            if settings.yandex_vision_api_key or settings.yandex_iam_token:
                vision = cls._vision(settings)
            else:
                Log.warning("Yandex Vision credentials missing, scanned documents will fail")
            return HybridOcrProvider(
                text_layer=TextLayerExtractorFactory.create(settings),
                vision=vision,
                min_text_chars=settings.pdf_min_text_chars,
            )
        raise ValueError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )

    @classmethod
    def _vision(cls, settings: Settings) -> YandexVisionAdapter:
        return YandexVisionAdapter(
            folder_id=settings.yandex_folder_id,
            url=settings.yandex_vision_url,
            timeout_seconds=settings.ocr_timeout_seconds,
            api_key=settings.yandex_vision_api_key,
            iam_token=settings.yandex_iam_token,
        )
