import pytest

from esg_lite.transport.regex_extractor import (
    city_name,
    extract_cargo,
    extract_distance,
    extract_fuel_hint,
    extract_route,
    extract_transport_data,
    extract_vehicle,
)

WAYBILL = (
    "Транспортная накладная № 17\n"
    "Автомобиль: КАМАЗ 65115 гос. номер А123ВС77\n"
    "Маршрут: г. Москва → г. Тверь\n"
    "Масса груза: 10,5 т\n"
)


class TestExtractVehicle:
    def test_model_and_plate(self) -> None:
        vehicle = extract_vehicle(WAYBILL)
        assert vehicle.model == "КАМАЗ"
        assert vehicle.license_plate.replace(" ", "") == "А123ВС77"
        assert vehicle.confidence == 0.85

    def test_model_only(self) -> None:
        vehicle = extract_vehicle("Перевозчик на автомобиле Газель")
        assert vehicle.model == "Газель"
        assert vehicle.license_plate == ""
        assert vehicle.confidence == 0.5

    def test_model_inside_word_is_ignored(self) -> None:
        assert extract_vehicle("РОМАЗОВ").model == ""

    def test_nothing_found(self) -> None:
        assert extract_vehicle("Счет на оплату").confidence == 0.0


class TestExtractRoute:
    def test_arrow_route(self) -> None:
        route = extract_route(WAYBILL)
        assert route.origin_city == "Москва"
        assert route.destination_city == "Тверь"
        assert route.is_complete
        assert route.confidence == 0.8

    def test_labelled_points(self) -> None:
        text = "Пункт отправления: 125009, г. Москва, ул. Тверская\nПункт назначения: г. Казань"
        route = extract_route(text)
        assert route.origin_city == "Москва"
        assert route.destination_city == "Казань"
        assert route.confidence == 0.75

    def test_missing_destination_halves_confidence(self) -> None:
        route = extract_route("Пункт отправления: г. Москва")
        assert not route.is_complete
        assert route.confidence == 0.0

    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            ("г. Тверь", "Тверь"),
            ("125009, г. Москва, ул. Тверская, 1", "Москва"),
            ("Подольск, Московская область", "Подольск"),
            ("с. Ивановское", "Ивановское"),
        ],
    )
    def test_city_name(self, address: str, expected: str) -> None:
        assert city_name(address) == expected


class TestExtractCargoAndDistance:
    def test_cargo_in_tonnes(self) -> None:
        cargo = extract_cargo(WAYBILL)
        assert cargo is not None
        assert cargo.weight == 10.5
        assert cargo.tonnes == 10.5

    def test_cargo_in_kilograms(self) -> None:
        cargo = extract_cargo("Вес брутто: 2500 кг")
        assert cargo is not None
        assert cargo.unit == "кг"
        assert cargo.tonnes == 2.5

    def test_distance(self) -> None:
        assert extract_distance("Пробег: 356,4 км") == 356.4

    def test_no_distance(self) -> None:
        assert extract_distance(WAYBILL) is None


class TestExtractFuelHint:
    @pytest.mark.parametrize("text", ["Топливо: ДТ", "дизельное топливо", "Дизтопливо 200 л"])
    def test_diesel(self, text: str) -> None:
        assert extract_fuel_hint(text) == "diesel"

    @pytest.mark.parametrize("text", ["Бензин АИ-92", "АИ95"])
    def test_gasoline(self, text: str) -> None:
        assert extract_fuel_hint(text) == "gasoline"

    def test_no_fuel(self) -> None:
        assert extract_fuel_hint(WAYBILL) is None


class TestExtractTransportData:
    def test_combines_fields(self) -> None:
        data = extract_transport_data(WAYBILL)
        assert not data.is_empty
        assert data.vehicle.model == "КАМАЗ"
        assert data.route.destination_city == "Тверь"
        assert data.cargo is not None

    def test_unrelated_text_is_empty(self) -> None:
        assert extract_transport_data("Счет за электроэнергию за январь").is_empty
