from unittest.mock import patch

import pytest

from esg_lite.config.settings import Settings
from esg_lite.transport.analyzer import TransportAnalyzer
from esg_lite.transport.example_client_adapter import ExampleClientAdapter
from esg_lite.transport.factory import TransportAnalyzerFactory
from esg_lite.transport.foundation_models_adapter import FoundationModelsClientAdapter


class TestTransportAnalyzerFactory:
    def test_creates_foundation_models_client(self) -> None:
        settings = Settings(
            transport_analysis_provider="foundation_models",
            foundation_models_api_key="key",
        )
        with patch("esg_lite.transport.foundation_models_adapter.openai.OpenAI") as mock_openai:
            analyzer = TransportAnalyzerFactory.create(settings)

        assert isinstance(analyzer, TransportAnalyzer)
        assert isinstance(analyzer._client, FoundationModelsClientAdapter)
        mock_openai.assert_called_once_with(
            api_key="key",
            base_url=settings.foundation_models_base_url,
            timeout=settings.foundation_models_timeout_seconds,
        )

    def test_creates_example_client(self) -> None:
        analyzer = TransportAnalyzerFactory.create(Settings(transport_analysis_provider="Example"))
        assert isinstance(analyzer._client, ExampleClientAdapter)

    def test_none_disables_model_lookups(self) -> None:
        analyzer = TransportAnalyzerFactory.create(Settings(transport_analysis_provider="none"))
        assert analyzer._client is None

    def test_raises_for_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown transport analysis provider"):
            TransportAnalyzerFactory.create(Settings(transport_analysis_provider="unknown"))
