from aqmonitor.models.parameters import Parameter, PM25_INDEX_WEIGHT
from aqmonitor.models.countries import (
    Country,
    CountryRegistry,
    GazetteerLocation,
    default_registry,
)
from aqmonitor.models.measurement import (
    CityLatestMeasurements,
    CountryAirQuality,
    CountryImportResult,
    Measurement,
    NATURAL_KEY,
    PollutionRanking,
    StoredMeasurement,
    ensure_utc,
)

__all__ = [
    "Parameter",
    "PM25_INDEX_WEIGHT",
    "Country",
    "CountryRegistry",
    "GazetteerLocation",
    "default_registry",
    "CityLatestMeasurements",
    "CountryAirQuality",
    "CountryImportResult",
    "Measurement",
    "NATURAL_KEY",
    "PollutionRanking",
    "StoredMeasurement",
    "ensure_utc",
]
