import random
from datetime import datetime, timedelta
from typing import List, Optional

from aqmonitor.config.logger import setup_logger
from aqmonitor.models import (
    Country,
    CountryRegistry,
    Measurement,
    Parameter,
    ensure_utc,
)

logger = setup_logger(__name__)

MIN_MEASUREMENTS = 50
MAX_MEASUREMENTS = 200
COORDINATE_JITTER = 0.05


class SyntheticDataGenerator:
    """
    Generates plausible measurements for a country when the OpenAQ API is unavailable.

    Values are drawn from per-parameter base ranges scaled by the country's severity
    factor. Pass a seeded `random.Random` to get reproducible output.
    """

    def __init__(
        self,
        registry: CountryRegistry,
        rng: Optional[random.Random] = None,
        min_count: int = MIN_MEASUREMENTS,
        max_count: int = MAX_MEASUREMENTS,
    ):
        if min_count < 0 or max_count < min_count:
            raise ValueError("Invalid measurement count range")
        self.registry = registry
        self.rng = rng or random.Random()
        self.min_count = min_count
        self.max_count = max_count

    def generate(
        self, country: str, date_from: datetime, date_to: datetime
    ) -> List[Measurement]:
        """
        Generates measurements for a country, sorted by ascending timestamp.

        Args:
            country: ISO alpha-2 country code.
            date_from: Start of the range (UTC).
            date_to: End of the range (UTC).

        Returns:
            List[Measurement]: Generated measurements, empty for an unregistered country.
        """
        registered = self.registry.get(country)
        if registered is None or not registered.locations:
            logger.debug("No synthetic profile for country %s, returning no data", country)
            return []

        date_from = ensure_utc(date_from)
        date_to = ensure_utc(date_to)
        span_minutes = max(int((date_to - date_from).total_seconds() // 60), 0)

        count = self.rng.randint(self.min_count, self.max_count)
        logger.debug(
            "Generating %d synthetic measurements for %s from %s to %s",
            count,
            registered.code,
            date_from.isoformat(),
            date_to.isoformat(),
        )

        parameters = list(Parameter)
        measurements = []
        for _ in range(count):
            timestamp = date_from + timedelta(minutes=self.rng.randint(0, span_minutes))
            location = self.rng.choice(registered.locations)
            parameter = self.rng.choice(parameters)

            measurements.append(
                Measurement(
                    location_id=location.location_id,
                    location=location.name,
                    parameter=parameter,
                    value=self._generate_value(registered, parameter),
                    unit=parameter.unit,
                    date_utc=timestamp,
                    date_local=timestamp.isoformat(),
                    country=registered.code,
                    city=location.name,
                    latitude=location.latitude
                    + self.rng.uniform(-COORDINATE_JITTER, COORDINATE_JITTER),
                    longitude=location.longitude
                    + self.rng.uniform(-COORDINATE_JITTER, COORDINATE_JITTER),
                )
            )

        measurements.sort(key=lambda m: m.date_utc)
        return measurements

    def _generate_value(self, country: Country, parameter: Parameter) -> float:
        low, high = value_bounds(country, parameter)
        value = round(self.rng.uniform(low, high), 2)
        # Rounding can step just outside the bounds
        return min(max(value, low), high)


def value_bounds(country: Country, parameter: Parameter) -> tuple[float, float]:
    """
    Range of synthetic values for a parameter, scaled by the country's severity factor.
    """
    base_low, base_high = parameter.base_range
    return base_low * country.severity_factor, base_high * country.severity_factor
