from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from aqmonitor.models.parameters import Parameter, PM25_INDEX_WEIGHT

# Columns identifying one reading; a second insert of the same key is skipped
NATURAL_KEY = ("location_id", "parameter", "date_utc")


def ensure_utc(value: datetime) -> datetime:
    """
    Returns value as an aware UTC datetime. Naive values are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Measurement:
    """
    A single normalized reading, as produced by the API client or the synthetic generator.
    """

    location_id: int
    location: str
    parameter: Parameter
    value: float
    unit: str
    date_utc: datetime
    date_local: str
    country: str
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def natural_key(self) -> Tuple[int, str, datetime]:
        """Values of the NATURAL_KEY columns, as stored."""
        row = self.to_row()
        return tuple(row[column] for column in NATURAL_KEY)

    def to_row(self) -> dict:
        """Column mapping for the measurements table."""
        return {
            "location_id": self.location_id,
            "location_name": self.location,
            "parameter": self.parameter.value,
            "value": float(self.value),
            "unit": self.unit,
            "date_utc": ensure_utc(self.date_utc),
            "date_local": self.date_local,
            "country": self.country,
            "city": self.city,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass(frozen=True)
class StoredMeasurement(Measurement):
    id: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "StoredMeasurement":
        return cls(
            id=row.id,
            location_id=row.location_id,
            location=row.location_name,
            parameter=Parameter(row.parameter),
            value=row.value,
            unit=row.unit,
            date_utc=ensure_utc(row.date_utc),
            date_local=row.date_local,
            country=row.country,
            city=row.city,
            latitude=row.latitude,
            longitude=row.longitude,
            created_at=ensure_utc(row.created_at) if row.created_at else None,
        )


@dataclass
class CountryAirQuality:
    country: str
    avg_pm25: Optional[float] = None
    avg_pm10: Optional[float] = None
    avg_o3: Optional[float] = None
    avg_no2: Optional[float] = None
    avg_so2: Optional[float] = None
    avg_co: Optional[float] = None
    measurement_count: int = 0

    def average(self, parameter: Parameter) -> Optional[float]:
        return getattr(self, f"avg_{parameter.value}")


@dataclass
class PollutionRanking:
    country: str
    pollution_index: float
    pm25_avg: Optional[float] = None
    pm10_avg: Optional[float] = None

    @classmethod
    def empty(cls, country: str) -> "PollutionRanking":
        return cls(country=country, pollution_index=0.0)

    @classmethod
    def from_averages(
        cls, country: str, pm25_avg: Optional[float], pm10_avg: Optional[float]
    ) -> "PollutionRanking":
        index = PM25_INDEX_WEIGHT * (pm25_avg or 0.0) + (pm10_avg or 0.0)
        return cls(country, index, pm25_avg, pm10_avg)


@dataclass
class CityLatestMeasurements:
    city: str
    last_updated: datetime
    pm25: Optional[float] = None
    pm10: Optional[float] = None
    o3: Optional[float] = None
    no2: Optional[float] = None
    so2: Optional[float] = None
    co: Optional[float] = None


@dataclass
class CountryImportResult:
    """
    Outcome of one country's fetch-or-fallback-then-insert cycle.
    """

    country: str
    source: str
    fetched: int = 0
    inserted: int = 0
    error: Optional[str] = None

    @property
    def skipped(self) -> int:
        return max(self.fetched - self.inserted, 0) if self.ok else 0

    @property
    def ok(self) -> bool:
        return self.error is None
