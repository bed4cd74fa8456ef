from esg_lite.config.settings import Settings
from esg_lite.transport.analyzer import TransportAnalyzer
from esg_lite.transport.client_base import BaseAnalysisClient
from esg_lite.transport.example_client_adapter import ExampleClientAdapter
from esg_lite.transport.foundation_models_adapter import FoundationModelsClientAdapter


class TransportAnalyzerFactory:
    """Creates the transport analyzer with the configured language-model client."""

    PROVIDERS = ("foundation_models", "example", "none")

    @classmethod
    def create(cls, settings: Settings) -> TransportAnalyzer:
        return TransportAnalyzer(client=cls._create_client(settings))

    @classmethod
    def _create_client(cls, settings: Settings) -> BaseAnalysisClient | None:
        provider = settings.transport_analysis_provider.lower()
        if provider == "none":
            return None
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "foundation_models":
            return FoundationModelsClientAdapter(
                api_key=settings.foundation_models_api_key,
                base_url=settings.foundation_models_base_url,
                model=settings.foundation_models_model,
                timeout_seconds=settings.foundation_models_timeout_seconds,
            )
        raise ValueError(
            f"Unknown transport analysis provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
