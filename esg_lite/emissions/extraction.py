import math
from typing import Any

from esg_lite.emissions.models import (
    EmissionExtraction,
    FlatNumericExtraction,
    TransportExtraction,
    UnrecognizedExtraction,
)

FLAT_FIELDS = ("emissions", "co2", "carbon")


def as_finite_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None if it is not numeric."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _transport_extraction(ocr_data: dict[str, Any]) -> TransportExtraction | None:
    extracted = ocr_data.get("extractedData")
    if not isinstance(extracted, dict):
        return None
    transport = extracted.get("transport")
    if not isinstance(transport, dict):
        return None
    analysis = transport.get("analysis")
    if not isinstance(analysis, dict):
        return None
    emissions = analysis.get("emissions")
    if not isinstance(emissions, dict):
        return None
    co2_kg = as_finite_number(emissions.get("co2Emissions"))
    if co2_kg is None:
        return None
    return TransportExtraction(
        co2_kg=co2_kg,
        confidence_score=as_finite_number(analysis.get("confidenceScore")),
    )


def extract_emission(ocr_data: dict[str, Any] | None) -> EmissionExtraction:
    """Pick one emission figure from ``ocr_data``; the first source found wins.

    Order: transport analysis (kg), then flat ``emissions``, ``co2`` and
    ``carbon`` fields (tonnes).
    """
    if not ocr_data:
        return UnrecognizedExtraction()

    transport = _transport_extraction(ocr_data)
    if transport is not None:
        return transport

    for field_name in FLAT_FIELDS:
        value = as_finite_number(ocr_data.get(field_name))
        if value is not None:
            return FlatNumericExtraction(field_name=field_name, value=value)

    return UnrecognizedExtraction()
