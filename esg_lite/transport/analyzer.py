from esg_lite.logging.logger import Log
from esg_lite.transport.calculator import calculate_emissions
from esg_lite.transport.client_base import BaseAnalysisClient
from esg_lite.transport.exceptions import TransportAnalysisError
from esg_lite.transport.models import (
    DIESEL,
    GASOLINE,
    UNKNOWN_FUEL,
    FuelTypeResult,
    RouteDistanceResult,
    TransportAnalysis,
    TransportDocumentData,
)
from esg_lite.transport.regex_extractor import extract_transport_data

FUEL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "fuelType": {"type": "string", "enum": [GASOLINE, DIESEL, UNKNOWN_FUEL]},
        "confidence": {"type": "number"},
        "reasoning": {"type": "string"},
    },
    "required": ["fuelType", "confidence", "reasoning"],
    "additionalProperties": False,
}

DISTANCE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "distanceKm": {"type": "number"},
        "confidence": {"type": "number"},
        "reasoning": {"type": "string"},
    },
    "required": ["distanceKm", "confidence", "reasoning"],
    "additionalProperties": False,
}

FUEL_SYSTEM_PROMPT = (
    "Ты эксперт по грузовому автотранспорту России. "
    "Определи тип топлива транспортного средства: gasoline, diesel или unknown. "
    "Верни JSON с полями fuelType, confidence (0-1) и reasoning."
)

DISTANCE_SYSTEM_PROMPT = (
    "Ты эксперт по автомобильным маршрутам России. "
    "Оцени расстояние по автодорогам между двумя городами в километрах. "
    "Верни JSON с полями distanceKm, confidence (0-1) и reasoning."
)

DOCUMENT_FUEL_CONFIDENCE = 0.9
DOCUMENT_DISTANCE_CONFIDENCE = 0.95


def _clamp_confidence(value: object) -> float:
    try:
        confidence = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return min(max(confidence, 0.0), 1.0)


class TransportAnalyzer:
    """Turns waybill text into vehicle, route, fuel and CO2 estimates."""

    def __init__(
        self,
        client: BaseAnalysisClient | None,
        review_threshold: float = 0.7,
    ) -> None:
        self._client = client
        self._review_threshold = review_threshold

    def analyze(self, text: str) -> TransportAnalysis | None:
        """Return the analysis, or None when the text does not look like a waybill."""
        data = extract_transport_data(text)
        if data.is_empty:
            return None

        fuel = self._resolve_fuel(data)
        distance = self._resolve_distance(data)

        emissions = None
        if fuel.fuel_type != UNKNOWN_FUEL and distance.distance_km > 0:
            emissions = calculate_emissions(
                fuel.fuel_type,
                distance.distance_km,
                data.vehicle.model,
                data.cargo.tonnes if data.cargo else None,
            )

        needs_review = (
            fuel.confidence < self._review_threshold
            or distance.confidence < self._review_threshold
            or fuel.fuel_type == UNKNOWN_FUEL
            or distance.distance_km == 0
        )
        return TransportAnalysis(
            data=data,
            fuel=fuel,
            distance=distance,
            emissions=emissions,
            needs_user_review=needs_review,
            confidence_score=(fuel.confidence + distance.confidence) / 2,
        )

    def _resolve_fuel(self, data: TransportDocumentData) -> FuelTypeResult:
        if data.fuel_hint:
            return FuelTypeResult(
                fuel_type=data.fuel_hint,
                confidence=DOCUMENT_FUEL_CONFIDENCE,
                source="document",
                reasoning="Fuel type stated in the document",
            )
        if self._client is None or not data.vehicle.model:
            return FuelTypeResult(fuel_type=UNKNOWN_FUEL, confidence=0.0, source="none")

        try:
            answer = self._client.complete_json(
                schema_name="fuel_type",
                system_prompt=FUEL_SYSTEM_PROMPT,
                user_prompt=(
                    f"Модель: {data.vehicle.model}\n"
                    f"Госномер: {data.vehicle.license_plate or 'не указан'}"
                ),
                json_schema=FUEL_SCHEMA,
            )
        except TransportAnalysisError as exc:
            Log.warning("Fuel type lookup failed", error=str(exc))
            return FuelTypeResult(
                fuel_type=UNKNOWN_FUEL,
                confidence=0.0,
                source="ai",
                reasoning="Fuel type lookup failed",
            )

        fuel_type = str(answer.get("fuelType", UNKNOWN_FUEL)).lower()
        if fuel_type not in (GASOLINE, DIESEL):
            fuel_type = UNKNOWN_FUEL
        return FuelTypeResult(
            fuel_type=fuel_type,
            confidence=_clamp_confidence(answer.get("confidence")),
            source="ai",
            reasoning=str(answer.get("reasoning", "")),
        )

    def _resolve_distance(self, data: TransportDocumentData) -> RouteDistanceResult:
        if data.distance_km is not None and data.distance_km > 0:
            return RouteDistanceResult(
                distance_km=data.distance_km,
                confidence=DOCUMENT_DISTANCE_CONFIDENCE,
                source="document",
                reasoning="Distance stated in the document",
            )
        if self._client is None or not data.route.is_complete:
            return RouteDistanceResult(distance_km=0.0, confidence=0.0, source="none")

        try:
            answer = self._client.complete_json(
                schema_name="route_distance",
                system_prompt=DISTANCE_SYSTEM_PROMPT,
                user_prompt=(
                    f"Откуда: {data.route.origin_city}\n"
                    f"Куда: {data.route.destination_city}"
                ),
                json_schema=DISTANCE_SCHEMA,
            )
        except TransportAnalysisError as exc:
            Log.warning("Route distance lookup failed", error=str(exc))
            return RouteDistanceResult(
                distance_km=0.0,
                confidence=0.0,
                source="ai",
                reasoning="Route distance lookup failed",
            )

        try:
            distance_km = max(float(answer.get("distanceKm", 0.0)), 0.0)
        except (TypeError, ValueError):
            distance_km = 0.0
        return RouteDistanceResult(
            distance_km=distance_km,
            confidence=_clamp_confidence(answer.get("confidence")),
            source="ai",
            reasoning=str(answer.get("reasoning", "")),
        )
