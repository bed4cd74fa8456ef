from dataclasses import dataclass
from typing import Any

GASOLINE = "gasoline"
DIESEL = "diesel"
UNKNOWN_FUEL = "unknown"


@dataclass(frozen=True)
class VehicleInfo:
    model: str
    license_plate: str
    confidence: float


@dataclass(frozen=True)
class RouteInfo:
    origin: str
    destination: str
    origin_city: str
    destination_city: str
    confidence: float

    @property
    def is_complete(self) -> bool:
        return bool(self.origin_city and self.destination_city)


@dataclass(frozen=True)
class CargoInfo:
    weight: float
    unit: str

    @property
    def tonnes(self) -> float:
        return self.weight if self.unit == "т" else self.weight / 1000


@dataclass(frozen=True)
class TransportDocumentData:
    """Fields read from a waybill by pattern matching."""

    vehicle: VehicleInfo
    route: RouteInfo
    cargo: CargoInfo | None = None
    distance_km: float | None = None
    fuel_hint: str | None = None

    @property
    def confidence(self) -> float:
        return (self.vehicle.confidence + self.route.confidence) / 2

    @property
    def is_empty(self) -> bool:
        return not self.vehicle.model and not self.route.is_complete and self.distance_km is None


@dataclass(frozen=True)
class FuelTypeResult:
    fuel_type: str
    confidence: float
    source: str
    reasoning: str = ""


@dataclass(frozen=True)
class RouteDistanceResult:
    distance_km: float
    confidence: float
    source: str
    reasoning: str = ""


@dataclass(frozen=True)
class TransportEmissions:
    fuel_consumption_l: float
    co2_emissions_kg: float
    coefficient: float
    calculation_method: str


@dataclass(frozen=True)
class TransportAnalysis:
    data: TransportDocumentData
    fuel: FuelTypeResult
    distance: RouteDistanceResult
    emissions: TransportEmissions | None
    needs_user_review: bool
    confidence_score: float

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the ``extractedData.transport`` shape stored with the document."""
        cargo = self.data.cargo
        emissions = self.emissions
        return {
            "vehicle": {
                "model": self.data.vehicle.model,
                "licensePlate": self.data.vehicle.license_plate,
                "modelConfidence": self.data.vehicle.confidence,
            },
            "route": {
                "from": self.data.route.origin,
                "to": self.data.route.destination,
                "fromCity": self.data.route.origin_city,
                "toCity": self.data.route.destination_city,
            },
            "cargo": {"weight": cargo.weight, "unit": cargo.unit} if cargo else None,
            "analysis": {
                "fuelType": {
                    "fuelType": self.fuel.fuel_type,
                    "confidence": self.fuel.confidence,
                    "source": self.fuel.source,
                    "reasoning": self.fuel.reasoning,
                },
                "distance": {
                    "distance": self.distance.distance_km,
                    "distanceSource": self.distance.source,
                    "confidence": self.distance.confidence,
                    "reasoning": self.distance.reasoning,
                },
                "emissions": (
                    {
                        "fuelConsumption": emissions.fuel_consumption_l,
                        "co2Emissions": emissions.co2_emissions_kg,
                        "coefficient": emissions.coefficient,
                        "calculationMethod": emissions.calculation_method,
                    }
                    if emissions
                    else None
                ),
                "needsUserReview": self.needs_user_review,
                "confidenceScore": self.confidence_score,
            },
        }
