import random
from datetime import datetime, timedelta, timezone

import pytest

from aqmonitor.etl.synthetic import (
    MAX_MEASUREMENTS,
    MIN_MEASUREMENTS,
    SyntheticDataGenerator,
    value_bounds,
)
from aqmonitor.models import Parameter

DATE_TO = datetime(2024, 5, 8, 12, 30, tzinfo=timezone.utc)
DATE_FROM = DATE_TO - timedelta(days=7)


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("country", ["NL", "DE", "FR", "GR", "ES", "PK"])
def test_generated_measurements_are_plausible(registry, country, seed):
    generator = SyntheticDataGenerator(registry, rng=random.Random(seed))

    measurements = generator.generate(country, DATE_FROM, DATE_TO)

    assert MIN_MEASUREMENTS <= len(measurements) <= MAX_MEASUREMENTS
    registered = registry.get(country)
    gazetteer = {location.name: location for location in registered.locations}
    for m in measurements:
        assert DATE_FROM <= m.date_utc <= DATE_TO
        assert m.parameter in Parameter
        low, high = value_bounds(registered, m.parameter)
        assert low <= m.value <= high
        assert m.unit == m.parameter.unit
        assert m.country == country
        location = gazetteer[m.city]
        assert m.location_id == location.location_id
        assert abs(m.latitude - location.latitude) <= 0.05 + 1e-9
        assert abs(m.longitude - location.longitude) <= 0.05 + 1e-9

    timestamps = [m.date_utc for m in measurements]
    assert timestamps == sorted(timestamps)


def test_severity_factor_scales_value_ranges(registry):
    clean = value_bounds(registry.get("NL"), Parameter.PM25)
    dirty = value_bounds(registry.get("PK"), Parameter.PM25)

    assert clean == pytest.approx((4.5, 31.5))
    assert dirty == pytest.approx((9.0, 63.0))


def test_same_seed_gives_same_data(registry):
    first = SyntheticDataGenerator(registry, rng=random.Random(7)).generate("GR", DATE_FROM, DATE_TO)
    second = SyntheticDataGenerator(registry, rng=random.Random(7)).generate("GR", DATE_FROM, DATE_TO)

    assert first == second


def test_lowercase_country_is_accepted(registry):
    generator = SyntheticDataGenerator(registry, rng=random.Random(1))

    measurements = generator.generate("es", DATE_FROM, DATE_TO)

    assert measurements
    assert {m.country for m in measurements} == {"ES"}


def test_unregistered_country_returns_no_data(registry):
    generator = SyntheticDataGenerator(registry, rng=random.Random(1))

    assert generator.generate("US", DATE_FROM, DATE_TO) == []


def test_empty_range_pins_timestamps_to_start(registry):
    generator = SyntheticDataGenerator(registry, rng=random.Random(3), min_count=10, max_count=10)

    measurements = generator.generate("NL", DATE_TO, DATE_TO)

    assert len(measurements) == 10
    assert {m.date_utc for m in measurements} == {DATE_TO}


def test_invalid_count_range(registry):
    with pytest.raises(ValueError):
        SyntheticDataGenerator(registry, min_count=10, max_count=5)
