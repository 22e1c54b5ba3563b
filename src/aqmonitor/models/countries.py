from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from aqmonitor.errors import ValidationError


@dataclass(frozen=True)
class GazetteerLocation:
    location_id: int
    name: str
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Country:
    """
    A country the monitor ingests data for.

    severity_factor scales synthetic values: > 1 for dirtier profiles, < 1 for cleaner ones.
    """

    code: str
    name: str
    severity_factor: float
    locations: Tuple[GazetteerLocation, ...] = field(default_factory=tuple)


class CountryRegistry:
    """
    Ordered set of supported countries. Order is the ingestion order.
    """

    def __init__(self, countries: List[Country]):
        if not countries:
            raise ValueError("A country registry needs at least one country")
        self._countries = {country.code.upper(): country for country in countries}

    def __iter__(self) -> Iterator[Country]:
        return iter(self._countries.values())

    def __len__(self) -> int:
        return len(self._countries)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.strip().upper() in self._countries

    @property
    def codes(self) -> List[str]:
        return list(self._countries)

    def get(self, code: str) -> Optional[Country]:
        if not isinstance(code, str):
            return None
        return self._countries.get(code.strip().upper())

    def validate(self, code: str) -> str:
        """
        Normalizes a user supplied country code.

        Args:
            code: ISO alpha-2 country code, any case.

        Returns:
            str: The upper-cased code.

        Raises:
            ValidationError: If the code is not registered.
        """
        country = self.get(code)
        if country is None:
            raise ValidationError(f"Unsupported country code '{code}'", self.codes)
        return country.code


def _locations(base_id: int, *entries: Tuple[str, float, float]) -> Tuple[GazetteerLocation, ...]:
    return tuple(
        GazetteerLocation(base_id + idx, name, lat, lon)
        for idx, (name, lat, lon) in enumerate(entries, start=1)
    )


DEFAULT_COUNTRIES = [
    Country(
        "NL",
        "Netherlands",
        0.9,
        _locations(
            9100,
            ("Amsterdam", 52.3676, 4.9041),
            ("Rotterdam", 51.9244, 4.4777),
            ("Utrecht", 52.0907, 5.1214),
            ("The Hague", 52.0705, 4.3007),
        ),
    ),
    Country(
        "DE",
        "Germany",
        0.9,
        _locations(
            9200,
            ("Berlin", 52.5200, 13.4050),
            ("Munich", 48.1351, 11.5820),
            ("Hamburg", 53.5511, 9.9937),
            ("Frankfurt", 50.1109, 8.6821),
        ),
    ),
    Country(
        "FR",
        "France",
        0.9,
        _locations(
            9300,
            ("Paris", 48.8566, 2.3522),
            ("Marseille", 43.2965, 5.3698),
            ("Lyon", 45.7640, 4.8357),
            ("Toulouse", 43.6047, 1.4442),
        ),
    ),
    Country(
        "GR",
        "Greece",
        1.1,
        _locations(
            9400,
            ("Athens", 37.9838, 23.7275),
            ("Thessaloniki", 40.6401, 22.9444),
            ("Patras", 38.2466, 21.7345),
            ("Heraklion", 35.3387, 25.1442),
        ),
    ),
    Country(
        "ES",
        "Spain",
        0.9,
        _locations(
            9500,
            ("Madrid", 40.4168, -3.7038),
            ("Barcelona", 41.3851, 2.1734),
            ("Valencia", 39.4699, -0.3763),
            ("Seville", 37.3891, -5.9845),
        ),
    ),
    Country(
        "PK",
        "Pakistan",
        1.8,
        _locations(
            9600,
            ("Karachi", 24.8607, 67.0011),
            ("Lahore", 31.5204, 74.3587),
            ("Islamabad", 33.6844, 73.0479),
            ("Peshawar", 34.0151, 71.5249),
        ),
    ),
]


def default_registry() -> CountryRegistry:
    return CountryRegistry(DEFAULT_COUNTRIES)
