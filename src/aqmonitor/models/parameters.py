from enum import Enum
from typing import Optional, Tuple


class Parameter(str, Enum):
    """
    Pollutant codes tracked by the monitor.
    """

    PM25 = "pm25"
    PM10 = "pm10"
    O3 = "o3"
    NO2 = "no2"
    SO2 = "so2"
    CO = "co"

    @property
    def unit(self) -> str:
        return PARAMETER_UNITS[self]

    @property
    def base_range(self) -> Tuple[float, float]:
        """Typical (min, max) value used when generating synthetic measurements."""
        return PARAMETER_BASE_RANGES[self]

    @classmethod
    def parse(cls, code: Optional[str]) -> Optional["Parameter"]:
        """
        Maps an API parameter code to a Parameter, or None when the code is not tracked.
        """
        if not isinstance(code, str):
            return None
        try:
            return cls(code.strip().lower())
        except ValueError:
            return None


PARAMETER_UNITS = {
    Parameter.PM25: "µg/m³",
    Parameter.PM10: "µg/m³",
    Parameter.O3: "µg/m³",
    Parameter.NO2: "µg/m³",
    Parameter.SO2: "µg/m³",
    Parameter.CO: "µg/m³",
}

PARAMETER_BASE_RANGES = {
    Parameter.PM25: (5.0, 35.0),
    Parameter.PM10: (10.0, 50.0),
    Parameter.O3: (30.0, 100.0),
    Parameter.NO2: (10.0, 60.0),
    Parameter.SO2: (2.0, 20.0),
    Parameter.CO: (200.0, 1200.0),
}

# Weight of PM2.5 in the pollution index
PM25_INDEX_WEIGHT = 1.5
