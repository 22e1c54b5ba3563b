import random

import pytest

from aqmonitor.errors import (
    AuthError,
    DecodeError,
    StorageError,
    TransportError,
    ValidationError,
)
from aqmonitor.etl.openaq_client import OpenAQClient
from aqmonitor.etl.pipeline import AirQualityPipeline
from aqmonitor.etl.synthetic import SyntheticDataGenerator
from aqmonitor.models import CountryRegistry, Parameter
from aqmonitor.utils.api_client import APIClient

from conftest import FakeSession, api_result, make_measurement, measurements_page


class StubOpenAQClient:
    """
    Returns canned data per country; an exception value is raised instead.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []
        self.api_client = self

    def fetch_measurements(self, country, date_from, date_to):
        self.calls.append((country, date_from, date_to))
        response = self.responses.get(country, [])
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


class FailingDBHandler:
    """
    Raises StorageError when inserting for the configured countries.
    """

    def __init__(self, failing_countries):
        self.failing_countries = set(failing_countries)
        self.inserted = []

    def insert_measurements(self, data):
        if data and data[0].country in self.failing_countries:
            raise StorageError("connection lost")
        self.inserted.extend(data)
        return len(data)

    def close(self):
        pass


class UntouchableDBHandler:
    def __getattr__(self, name):
        raise AssertionError(f"database should not be used, got .{name}")


def small_registry(registry, *codes):
    return CountryRegistry([registry.get(code) for code in codes])


def make_pipeline(db_handler, responses, registry, seed=0):
    generator = SyntheticDataGenerator(registry, rng=random.Random(seed), min_count=5, max_count=5)
    client = StubOpenAQClient(responses)
    return AirQualityPipeline(db_handler, client, registry=registry, generator=generator), client


def test_import_uses_api_data(db_handler, registry):
    registry = small_registry(registry, "NL", "DE")
    responses = {
        "NL": [make_measurement("NL", Parameter.PM25, 12.0, location_id=1)],
        "DE": [make_measurement("DE", Parameter.PM10, 22.0, location_id=2, city="Berlin")],
    }
    pipeline, client = make_pipeline(db_handler, responses, registry)

    results = pipeline.import_range(3)

    assert [call[0] for call in client.calls] == ["NL", "DE"]
    date_from, date_to = client.calls[0][1:]
    assert (date_to - date_from).days == 3
    assert [(r.country, r.source, r.inserted) for r in results] == [
        ("NL", "openaq", 1),
        ("DE", "openaq", 1),
    ]
    assert db_handler.count_measurements() == 2


@pytest.mark.parametrize(
    "error", [TransportError("timeout"), AuthError("bad key"), DecodeError("garbage")]
)
def test_api_failure_falls_back_to_synthetic_data(db_handler, registry, error):
    registry = small_registry(registry, "GR", "PK")
    responses = {"GR": error, "PK": [make_measurement("PK", location_id=9)]}
    pipeline, _ = make_pipeline(db_handler, responses, registry)

    results = pipeline.import_range(2)

    assert [(r.country, r.source, r.ok) for r in results] == [
        ("GR", "synthetic", True),
        ("PK", "openaq", True),
    ]
    assert results[0].fetched == 5
    assert db_handler.count_measurements("GR") == results[0].inserted
    assert db_handler.count_measurements("PK") == 1


def test_storage_failure_aborts_remaining_countries(registry):
    registry = small_registry(registry, "NL", "DE", "FR")
    responses = {code: [make_measurement(code, location_id=i)] for i, code in enumerate(registry.codes)}
    db_handler = FailingDBHandler({"DE"})
    pipeline, client = make_pipeline(db_handler, responses, registry)

    with pytest.raises(StorageError):
        pipeline.import_range(1)

    assert [call[0] for call in client.calls] == ["NL", "DE"]
    assert [m.country for m in db_handler.inserted] == ["NL"]


def test_storage_failure_can_be_recorded_per_country(registry):
    registry = small_registry(registry, "NL", "DE", "FR")
    responses = {code: [make_measurement(code, location_id=i)] for i, code in enumerate(registry.codes)}
    db_handler = FailingDBHandler({"DE"})
    pipeline, client = make_pipeline(db_handler, responses, registry)

    results = pipeline.import_range(1, continue_on_error=True)

    assert [(r.country, r.ok) for r in results] == [("NL", True), ("DE", False), ("FR", True)]
    assert "connection lost" in results[1].error
    assert [m.country for m in db_handler.inserted] == ["NL", "FR"]


@pytest.mark.parametrize("days", [0, -3, "7", 2.5, True])
def test_import_rejects_invalid_days(registry, days):
    pipeline, client = make_pipeline(UntouchableDBHandler(), {}, registry)

    with pytest.raises(ValidationError):
        pipeline.import_range(days)

    assert client.calls == []


def test_unregistered_country_is_rejected_before_touching_the_store(registry):
    pipeline, _ = make_pipeline(UntouchableDBHandler(), {}, registry)

    with pytest.raises(ValidationError) as excinfo:
        pipeline.average_for_country("US", 5)
    assert excinfo.value.valid_codes == ["NL", "DE", "FR", "GR", "ES", "PK"]
    assert "NL, DE, FR, GR, ES, PK" in str(excinfo.value)

    with pytest.raises(ValidationError):
        pipeline.measurements_for_country("XX")
    with pytest.raises(ValidationError):
        pipeline.latest_measurements_by_city("")


def test_end_to_end_queries(db_handler, registry):
    pipeline, _ = make_pipeline(db_handler, {}, registry)
    db_handler.insert_measurements(
        [
            make_measurement("PK", Parameter.PM25, 50.0, location_id=1),
            make_measurement("PK", Parameter.PM10, 80.0, location_id=1),
            make_measurement("DE", Parameter.PM25, 18.0, location_id=2),
            make_measurement("DE", Parameter.PM10, 28.0, location_id=2),
            make_measurement("NL", Parameter.PM25, 15.0, location_id=3),
            make_measurement("NL", Parameter.PM10, 25.0, location_id=3),
        ]
    )

    ranking = pipeline.most_polluted_country()
    assert ranking.country == "PK"
    assert ranking.pollution_index == pytest.approx(155.0)

    average = pipeline.average_for_country("nl", 5)
    assert average.country == "NL"
    assert average.avg_pm25 == pytest.approx(15.0)
    assert average.avg_pm10 == pytest.approx(25.0)
    assert average.avg_o3 is None
    assert average.avg_so2 is None
    assert average.avg_co is None
    assert average.measurement_count == 2

    assert pipeline.measurements_for_country("FR") == []
    assert len(pipeline.measurements_for_country("PK")) == 2


def test_full_fallback_import_is_queryable(db_handler, registry):
    error = TransportError("offline")
    pipeline, _ = make_pipeline(db_handler, {code: error for code in registry.codes}, registry)
    pipeline.init_schema()

    results = pipeline.import_range(7)

    assert {r.source for r in results} == {"synthetic"}
    assert sum(r.inserted for r in results) == db_handler.count_measurements()
    assert pipeline.has_data()
    for code in registry.codes:
        assert pipeline.measurements_for_country(code)
        assert pipeline.latest_measurements_by_city(code)


def test_malformed_api_page_falls_back_to_synthetic_data(db_handler, registry):
    registry = small_registry(registry, "NL", "DE")
    session = FakeSession(
        measurements_page([api_result(city={"name": "Amsterdam"})], found=1),
        measurements_page([api_result(location_id=2, city="Berlin")], found=1),
    )
    client = OpenAQClient(APIClient("https://api.example.test/v2", session=session))
    generator = SyntheticDataGenerator(registry, rng=random.Random(0), min_count=5, max_count=5)
    pipeline = AirQualityPipeline(db_handler, client, registry=registry, generator=generator)

    results = pipeline.import_range(1)

    assert [(r.country, r.source, r.ok) for r in results] == [
        ("NL", "synthetic", True),
        ("DE", "openaq", True),
    ]
    assert db_handler.count_measurements("DE") == 1
    assert db_handler.count_measurements("NL") == results[0].inserted > 0
