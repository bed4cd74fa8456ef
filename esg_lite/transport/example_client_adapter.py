"""Example analysis client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAnalysisClient and register the provider in TransportAnalyzerFactory.
"""

import copy
from typing import Any, ClassVar

from esg_lite.transport.client_base import BaseAnalysisClient
from esg_lite.transport.exceptions import TransportAnalysisError


class ExampleClientAdapter(BaseAnalysisClient):
    """Returns canned answers keyed by schema name. No network calls."""

    DEFAULT_RESPONSES: ClassVar[dict[str, dict[str, Any]]] = {
        "fuel_type": {
            "fuelType": "diesel",
            "confidence": 0.8,
            "reasoning": "Heavy goods vehicles run on diesel",
        },
        "route_distance": {
            "distanceKm": 180.0,
            "confidence": 0.8,
            "reasoning": "Typical road distance between regional centres",
        },
    }

    def __init__(self, responses: dict[str, dict[str, Any]] | None = None) -> None:
        self._responses = responses if responses is not None else self.DEFAULT_RESPONSES

    def complete_json(
        self,
        *,
        schema_name: str,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> dict[str, Any]:
        _ = system_prompt, user_prompt, json_schema
        if schema_name not in self._responses:
            raise TransportAnalysisError(f"No example response for '{schema_name}'")
        return copy.deepcopy(self._responses[schema_name])
