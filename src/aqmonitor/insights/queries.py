from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import sqlalchemy as sa

from aqmonitor.config.logger import setup_logger
from aqmonitor.db.handler import DBHandler
from aqmonitor.errors import ValidationError
from aqmonitor.models import (
    CityLatestMeasurements,
    CountryAirQuality,
    Parameter,
    PollutionRanking,
    StoredMeasurement,
    ensure_utc,
)

logger = setup_logger(__name__)

RANKING_WINDOW_DAYS = 2
DEFAULT_AVERAGE_DAYS = 5
MEASUREMENTS_LIMIT = 1000


def _cutoff(days: int, now: Optional[datetime]) -> datetime:
    return ensure_utc(now or datetime.now(timezone.utc)) - timedelta(days=days)


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _parameter_value(table: sa.Table, parameter: Parameter):
    return sa.case((table.c.parameter == parameter.value, table.c.value))


def get_most_polluted_country(
    db_client: DBHandler, countries: Sequence[str], now: Optional[datetime] = None
) -> PollutionRanking:
    """
    Ranks countries by 1.5 x avg(PM2.5) + avg(PM10) over the last 2 days.

    A missing average counts as 0. Ties go to the country listed first.

    Args:
        db_client: Database handler.
        countries: Candidate country codes, in priority order.
        now: Reference time for the window, defaults to the current time.

    Returns:
        PollutionRanking: The highest ranked country, or a zero index result for the first
        country when no rows match.
    """
    if not countries:
        raise ValidationError("At least one country is required to rank pollution")

    logger.info("Finding the most polluted country among: %s", ", ".join(countries))
    m = db_client.measurements
    stmt = (
        sa.select(
            m.c.country,
            m.c.parameter,
            sa.func.avg(m.c.value).label("avg_value"),
        )
        .where(
            m.c.country.in_(list(countries)),
            m.c.parameter.in_([Parameter.PM25.value, Parameter.PM10.value]),
            m.c.date_utc > _cutoff(RANKING_WINDOW_DAYS, now),
        )
        .group_by(m.c.country, m.c.parameter)
    )

    with db_client.connect() as conn:
        rows = conn.execute(stmt).all()

    averages = {}
    for row in rows:
        averages.setdefault(row.country, {})[row.parameter] = _as_float(row.avg_value)

    if not averages:
        logger.warning(
            "No recent PM2.5/PM10 data found for countries: %s", ", ".join(countries)
        )
        return PollutionRanking.empty(countries[0])

    best: Optional[PollutionRanking] = None
    for country in countries:
        if country not in averages:
            continue
        ranking = PollutionRanking.from_averages(
            country,
            averages[country].get(Parameter.PM25.value),
            averages[country].get(Parameter.PM10.value),
        )
        if best is None or ranking.pollution_index > best.pollution_index:
            best = ranking

    logger.info(
        "Most polluted country determined: %s with index: %.2f",
        best.country,
        best.pollution_index,
    )
    return best


def get_average_air_quality(
    db_client: DBHandler,
    country: str,
    days: int = DEFAULT_AVERAGE_DAYS,
    now: Optional[datetime] = None,
) -> CountryAirQuality:
    """
    Per-parameter averages for a country over the last `days` days.

    Returns:
        CountryAirQuality: All averages absent and a count of 0 when no rows match.
    """
    logger.info("Calculating %d-day average air quality for %s", days, country)
    m = db_client.measurements
    stmt = sa.select(
        *[
            sa.func.avg(_parameter_value(m, parameter)).label(f"avg_{parameter.value}")
            for parameter in Parameter
        ],
        sa.func.count().label("measurement_count"),
    ).where(m.c.country == country, m.c.date_utc > _cutoff(days, now))

    with db_client.connect() as conn:
        row = conn.execute(stmt).one()

    result = CountryAirQuality(
        country=country,
        measurement_count=int(row.measurement_count or 0),
        **{
            f"avg_{parameter.value}": _as_float(row._mapping[f"avg_{parameter.value}"])
            for parameter in Parameter
        },
    )

    if result.measurement_count == 0:
        logger.info("No recent air quality data found for %s", country)
    else:
        logger.info(
            "Found %d-day average air quality data for %s (%d measurements)",
            days,
            country,
            result.measurement_count,
        )
    return result


def get_measurements_for_country(
    db_client: DBHandler, country: str, limit: int = MEASUREMENTS_LIMIT
) -> List[StoredMeasurement]:
    """
    Most recent measurements for a country, newest first.
    """
    m = db_client.measurements
    stmt = (
        sa.select(m)
        .where(m.c.country == country)
        .order_by(m.c.date_utc.desc(), m.c.id.desc())
        .limit(limit)
    )

    with db_client.connect() as conn:
        rows = conn.execute(stmt).all()

    logger.info("Retrieved %d measurements for %s", len(rows), country)
    return [StoredMeasurement.from_row(row) for row in rows]


def get_latest_measurements_by_city(
    db_client: DBHandler, country: str
) -> List[CityLatestMeasurements]:
    """
    Latest value per parameter for each city of a country, one row per city.
    """
    m = db_client.measurements
    ranked = (
        sa.select(
            m.c.city,
            m.c.parameter,
            m.c.value,
            m.c.date_utc,
            sa.func.row_number()
            .over(
                partition_by=(m.c.city, m.c.parameter),
                order_by=(m.c.date_utc.desc(), m.c.id.desc()),
            )
            .label("rn"),
        )
        .where(m.c.country == country, m.c.city.is_not(None))
        .subquery("latest_city_param")
    )

    stmt = (
        sa.select(
            ranked.c.city,
            *[
                sa.func.max(
                    sa.case((ranked.c.parameter == parameter.value, ranked.c.value))
                ).label(parameter.value)
                for parameter in Parameter
            ],
            sa.func.max(ranked.c.date_utc).label("last_updated"),
        )
        .where(ranked.c.rn == 1)
        .group_by(ranked.c.city)
        .order_by(ranked.c.city)
    )

    with db_client.connect() as conn:
        rows = conn.execute(stmt).all()

    logger.info("Retrieved latest measurements for %d cities in %s", len(rows), country)
    return [
        CityLatestMeasurements(
            city=row.city,
            last_updated=ensure_utc(row.last_updated),
            **{
                parameter.value: _as_float(row._mapping[parameter.value])
                for parameter in Parameter
            },
        )
        for row in rows
    ]
