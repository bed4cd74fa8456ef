"""Road transport CO2 estimate following order No. 371 emission factors."""

from esg_lite.transport.models import DIESEL, GASOLINE, TransportEmissions

CALCULATION_METHOD = "296-FZ-transport-prikas-371"

# kg CO2 per litre: t CO2 per t of fuel times fuel density in kg/l
EMISSION_FACTORS: dict[str, float] = {
    GASOLINE: 2.31 * 0.75,
    DIESEL: 2.67 * 0.84,
}

# litres per 100 km, matched by substring of the lowercased vehicle model
CONSUMPTION_ESTIMATES: dict[str, float] = {
    "газель": 12.5,
    "камаз": 28.0,
    "фура": 35.0,
    "легковой": 8.0,
    "легковая": 8.0,
    "микроавтобус": 10.0,
    "грузовик": 25.0,
    "тягач": 32.0,
}
DEFAULT_CONSUMPTION = 20.0
CARGO_ADJUSTMENT_PER_TONNE = 0.05


def estimate_consumption(vehicle_model: str) -> float:
    normalized = vehicle_model.lower()
    for keyword, consumption in CONSUMPTION_ESTIMATES.items():
        if keyword in normalized:
            return consumption
    return DEFAULT_CONSUMPTION


def calculate_emissions(
    fuel_type: str,
    distance_km: float,
    vehicle_model: str,
    cargo_tonnes: float | None = None,
) -> TransportEmissions:
    """Estimate fuel burnt over ``distance_km`` and the resulting CO2 in kilograms.

    Raises:
        ValueError: if the fuel type has no emission factor.
    """
    coefficient = EMISSION_FACTORS.get(fuel_type)
    if coefficient is None:
        raise ValueError(f"No emission factor for fuel type '{fuel_type}'")

    consumption = estimate_consumption(vehicle_model)
    if cargo_tonnes:
        consumption *= 1 + cargo_tonnes * CARGO_ADJUSTMENT_PER_TONNE

    fuel_litres = distance_km / 100 * consumption
    return TransportEmissions(
        fuel_consumption_l=fuel_litres,
        co2_emissions_kg=fuel_litres * coefficient,
        coefficient=coefficient,
        calculation_method=CALCULATION_METHOD,
    )
