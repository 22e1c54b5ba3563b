from typing import List, Optional

from aqmonitor.config.logger import setup_logger
from aqmonitor.models import (
    CityLatestMeasurements,
    CountryAirQuality,
    CountryImportResult,
    Parameter,
    PollutionRanking,
    StoredMeasurement,
)

logger = setup_logger("INSIGHTS")


def _fmt(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "N/A"


def report_import(results: List[CountryImportResult]) -> None:
    logger.info("=== IMPORT SUMMARY ===")
    for result in results:
        if result.ok:
            logger.info(
                f"{result.country}: {result.inserted} inserted, {result.skipped} duplicates skipped "
                f"(source: {result.source})"
            )
        else:
            logger.error(f"{result.country}: FAILED - {result.error}")


def report_most_polluted(ranking: PollutionRanking) -> None:
    """Most polluted country over the last 2 days (PM2.5 weighted 1.5x, plus PM10)."""
    if ranking.pm25_avg is None and ranking.pm10_avg is None:
        logger.warning(
            f"No recent PM2.5/PM10 data available. Defaulting to {ranking.country} with index 0"
        )
        return

    logger.info(
        f"MOST POLLUTED COUNTRY - Country: {ranking.country}, "
        f"Pollution index: {ranking.pollution_index:.2f}, "
        f"PM2.5 avg: {_fmt(ranking.pm25_avg)}, PM10 avg: {_fmt(ranking.pm10_avg)}"
    )


def report_average(air_quality: CountryAirQuality, days: int) -> None:
    """Per-parameter averages for one country."""
    if air_quality.measurement_count == 0:
        logger.warning(
            f"No measurements found for {air_quality.country} in the last {days} days"
        )
        return

    averages = ", ".join(
        f"{parameter.value}: {_fmt(air_quality.average(parameter))}"
        for parameter in Parameter
    )
    logger.info(
        f"{days}-DAY AVERAGE - {air_quality.country} "
        f"({air_quality.measurement_count} measurements) - {averages}"
    )


def report_measurements(country: str, measurements: List[StoredMeasurement]) -> None:
    if not measurements:
        logger.warning(f"No measurements stored for {country}")
        return

    logger.info(f"=== {len(measurements)} MOST RECENT MEASUREMENTS FOR {country} ===")
    for m in measurements:
        logger.info(
            f"{m.date_utc.isoformat()} | {m.city or m.location} | "
            f"{m.parameter.value} = {m.value:.2f} {m.unit}"
        )


def report_latest_by_city(country: str, cities: List[CityLatestMeasurements]) -> None:
    if not cities:
        logger.warning(f"No city level measurements stored for {country}")
        return

    logger.info(f"=== LATEST MEASUREMENTS BY CITY FOR {country} ===")
    for city in cities:
        values = ", ".join(
            f"{parameter.value}: {_fmt(getattr(city, parameter.value))}"
            for parameter in Parameter
        )
        logger.info(
            f"{city.city} - {values} - last updated {city.last_updated.isoformat()}"
        )
