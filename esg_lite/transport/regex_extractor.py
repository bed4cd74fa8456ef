"""Pattern-based extraction of vehicle, route and cargo from Russian waybills."""

import re

from esg_lite.transport.models import (
    DIESEL,
    GASOLINE,
    CargoInfo,
    RouteInfo,
    TransportDocumentData,
    VehicleInfo,
)

VEHICLE_MODELS: tuple[str, ...] = (
    "КАМАЗ",
    "Газель",
    "МАЗ",
    "ЗИЛ",
    "Мерседес",
    "Mercedes",
    "Вольво",
    "Volvo",
    "Скания",
    "Scania",
    "МАН",
    "MAN",
    "Фура",
    "Тягач",
)

_NOT_LETTER = r"(?<![А-ЯЁа-яёA-Za-z])"

_LICENSE_PLATES = (
    re.compile(r"[А-ЯЁ]\s?\d{3}\s?[А-ЯЁ]{2}\s?\d{2,3}(?:\s?RUS)?", re.IGNORECASE),
    re.compile(r"(?:г/н|госномер|гос\.\s?номер)[:\s]+([А-ЯЁ\d\s]{8,15})", re.IGNORECASE),
)

_ROUTE_ARROW = re.compile(
    r"Маршрут[:\s]+([^→\n]+?)\s*(?:→|->|—|\s-\s|\sдо\s)\s*((?:г\.\s?)?[^\n\r.,]+)",
    re.IGNORECASE,
)
_ROUTE_CITIES = re.compile(
    r"(?:г\.|город)\s?([А-ЯЁа-яё\-]+)\s?(?:→|->|—|-|до)\s?(?:г\.|город)\s?([А-ЯЁа-яё\-]+)",
    re.IGNORECASE,
)
_ROUTE_FROM = re.compile(
    r"(?:Пункт отправления|Откуда|Отправление)[:\s]+([^\n\r]+)", re.IGNORECASE
)
_ROUTE_TO = re.compile(
    r"(?:Пункт назначения|Куда|Прибытие)[:\s]+([^\n\r]+)", re.IGNORECASE
)

_CARGO = re.compile(
    r"(?:Масса|Вес|Груз|брутто|нетто)[^\d\n]{0,20}?(\d+(?:[.,]\d+)?)\s*(тонн|т|килограмм|кг)(?![А-ЯЁа-яё])",
    re.IGNORECASE,
)
_DISTANCE = re.compile(
    r"(?:Расстояние|Пробег|Дистанция)[^\d\n]{0,20}?(\d+(?:[.,]\d+)?)\s*км",
    re.IGNORECASE,
)
_DIESEL = re.compile(r"(?<![А-ЯЁа-яё])(?:ДТ(?![А-ЯЁа-яё])|дизел\w*|дизтопливо)", re.IGNORECASE)
_GASOLINE = re.compile(r"(?<![А-ЯЁа-яё])(?:бензин\w*|АИ-?9[258])", re.IGNORECASE)


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def extract_vehicle(text: str) -> VehicleInfo:
    model = ""
    for candidate in VEHICLE_MODELS:
        match = re.search(
            rf"{_NOT_LETTER}({re.escape(candidate)})(?=[\s,.]|$)", text, re.IGNORECASE
        )
        if match:
            model = match.group(1)
            break

    license_plate = ""
    for pattern in _LICENSE_PLATES:
        match = pattern.search(text)
        if match:
            license_plate = (match.group(1) if match.groups() else match.group(0)).strip()
            break

    if model and license_plate:
        confidence = 0.85
    elif model or license_plate:
        confidence = 0.5
    else:
        confidence = 0.0
    return VehicleInfo(model=model, license_plate=license_plate, confidence=confidence)


def city_name(address: str) -> str:
    """Reduce an address to its settlement name."""
    cleaned = re.sub(r"^\d{6}\s*,?\s*", "", address.strip())
    cleaned = re.sub(r"^(?:г\.|город|с\.|село)\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(
        r"[,;]\s*[А-ЯЁа-яё\s]+?(?:обл\.|область|край|республика).*$",
        "",
        cleaned,
        flags=re.IGNORECASE,
    )
    cleaned = re.sub(r"\s+(?:обл\.|область|край|республика).*$", "", cleaned, flags=re.IGNORECASE)
    cleaned = cleaned.split(",")[0]
    return cleaned.strip()


def extract_route(text: str) -> RouteInfo:
    origin = destination = ""
    confidence = 0.0

    for pattern in (_ROUTE_ARROW, _ROUTE_CITIES):
        match = pattern.search(text)
        if match:
            origin, destination = match.group(1).strip(), match.group(2).strip()
            confidence = 0.8
            break

    if not origin or not destination:
        from_match = _ROUTE_FROM.search(text)
        to_match = _ROUTE_TO.search(text)
        origin = from_match.group(1).strip() if from_match else ""
        destination = to_match.group(1).strip() if to_match else ""
        confidence = 0.75 if origin and destination else 0.0

    origin_city = city_name(origin) if origin else ""
    destination_city = city_name(destination) if destination else ""
    if not (origin_city and destination_city):
        confidence *= 0.5
    return RouteInfo(
        origin=origin,
        destination=destination,
        origin_city=origin_city,
        destination_city=destination_city,
        confidence=confidence,
    )


def extract_cargo(text: str) -> CargoInfo | None:
    match = _CARGO.search(text)
    if not match:
        return None
    unit = "т" if match.group(2).lower().startswith("т") else "кг"
    return CargoInfo(weight=_to_float(match.group(1)), unit=unit)


def extract_distance(text: str) -> float | None:
    match = _DISTANCE.search(text)
    return _to_float(match.group(1)) if match else None


def extract_fuel_hint(text: str) -> str | None:
    if _DIESEL.search(text):
        return DIESEL
    if _GASOLINE.search(text):
        return GASOLINE
    return None


def extract_transport_data(text: str) -> TransportDocumentData:
    return TransportDocumentData(
        vehicle=extract_vehicle(text),
        route=extract_route(text),
        cargo=extract_cargo(text),
        distance_km=extract_distance(text),
        fuel_hint=extract_fuel_hint(text),
    )
