from datetime import datetime
from typing import Dict, List, Optional

from aqmonitor.config.logger import setup_logger
from aqmonitor.errors import DecodeError
from aqmonitor.models import Measurement, Parameter, ensure_utc
from aqmonitor.utils.api_client import APIClient

logger = setup_logger(__name__)

DEFAULT_PAGE_LIMIT = 1000
DEFAULT_MAX_PAGES = 100


class OpenAQClient:
    """
    Fetches country level measurements from the OpenAQ `/measurements` endpoint.
    """

    def __init__(
        self,
        api_client: APIClient,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        max_pages: int = DEFAULT_MAX_PAGES,
    ):
        """
        Initialize the OpenAQClient.

        Args:
            api_client: API client for making HTTP requests.
            page_limit: Number of results requested per page.
            max_pages: Upper bound on pages requested for a single fetch.
        """
        self.api_client = api_client
        self.page_limit = page_limit
        self.max_pages = max_pages

    def fetch_measurements(
        self, country: str, date_from: datetime, date_to: datetime
    ) -> List[Measurement]:
        """
        Fetches every measurement for a country in a date range, following pagination.

        Pagination stops when the accumulated count reaches the reported `found` count,
        or when a page comes back with fewer results than the page limit.
        A failure on any page aborts the whole fetch.

        Args:
            country: ISO alpha-2 country code.
            date_from: Start of the range (UTC).
            date_to: End of the range (UTC).

        Returns:
            List[Measurement]: Measurements with a tracked parameter code.

        Raises:
            RemoteSourceError: Any transport, auth, status or decoding failure.
        """
        logger.info(
            "Fetching measurements for country: %s from %s to %s",
            country,
            date_from.isoformat(),
            date_to.isoformat(),
        )

        raw_results: List[Dict] = []
        page = 1

        while True:
            results, found = self._fetch_measurements_page(
                country, date_from, date_to, page
            )
            raw_results.extend(results)
            logger.debug(
                "Fetched %d results on page %d for %s (found: %s)",
                len(results),
                page,
                country,
                found,
            )

            if not self._should_continue_pagination(len(results), len(raw_results), found):
                break

            if page >= self.max_pages:
                logger.warning(
                    "Stopping pagination for %s after %d pages", country, self.max_pages
                )
                break

            page += 1

        measurements = self._extract_measurements(raw_results, country)
        logger.info(
            "Fetched %d measurements for %s (%d raw results over %d pages)",
            len(measurements),
            country,
            len(raw_results),
            page,
        )
        return measurements

    def _fetch_measurements_page(
        self, country: str, date_from: datetime, date_to: datetime, page: int
    ) -> tuple[List[Dict], Optional[int]]:
        """
        Fetches a single page of measurements from the API.

        Returns:
            tuple[List[Dict], Optional[int]]: The page results and the reported found count
            (None when the API does not report an exact count).
        """
        params = {
            "country": country,
            "date_from": _rfc3339(date_from),
            "date_to": _rfc3339(date_to),
            "limit": self.page_limit,
            "page": page,
        }

        body = self.api_client.get_json("/measurements", params=params)
        if not isinstance(body, dict):
            raise DecodeError("Measurements response is not a JSON object")

        results = body.get("results")
        if not isinstance(results, list):
            raise DecodeError("Measurements response has no 'results' list")

        meta = body.get("meta")
        if not isinstance(meta, dict):
            raise DecodeError("Measurements response has no 'meta' object")

        return results, _parse_found(meta.get("found"))

    def _should_continue_pagination(
        self, page_count: int, total_count: int, found: Optional[int]
    ) -> bool:
        """
        Determines if another page should be requested.

        Args:
            page_count: Number of results on the page just fetched.
            total_count: Number of results accumulated so far.
            found: Total reported by the API, or None when unknown.
        """
        if found is not None and total_count >= found:
            return False
        return page_count >= self.page_limit

    def _extract_measurements(self, raw_results: List[Dict], country: str) -> List[Measurement]:
        measurements = []
        skipped = 0
        for raw in raw_results:
            measurement = self._extract_measurement(raw, country)
            if measurement is None:
                skipped += 1
                continue
            measurements.append(measurement)

        if skipped:
            logger.debug("Skipped %d results with untracked parameters for %s", skipped, country)
        return measurements

    def _extract_measurement(self, raw: Dict, country: str) -> Optional[Measurement]:
        """
        Maps one API result to a Measurement.

        Returns:
            Optional[Measurement]: None when the parameter code is not tracked.

        Raises:
            DecodeError: If a required field is missing or malformed.
        """
        if not isinstance(raw, dict):
            raise DecodeError("Measurement result is not a JSON object")

        parameter = Parameter.parse(raw.get("parameter"))
        if parameter is None:
            return None

        try:
            location_id = int(raw["locationId"])
            value = float(raw["value"])
            date = raw["date"]
            date_utc = ensure_utc(_parse_datetime(date["utc"]))
            date_local = str(date.get("local") or date_utc.isoformat())
            location = _optional_str(raw, "location") or f"Location {location_id}"
            city = _optional_str(raw, "city")
            coordinates = raw.get("coordinates")
            if coordinates is None:
                coordinates = {}
            elif not isinstance(coordinates, dict):
                raise TypeError(
                    f"'coordinates' must be an object, got {type(coordinates).__name__}"
                )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed measurement result: {e!r}") from e

        return Measurement(
            location_id=location_id,
            location=location,
            parameter=parameter,
            value=value,
            unit=str(raw.get("unit") or parameter.unit),
            date_utc=date_utc,
            date_local=date_local,
            country=country,
            city=city,
            latitude=_optional_float(coordinates.get("latitude")),
            longitude=_optional_float(coordinates.get("longitude")),
        )


def _rfc3339(value: datetime) -> str:
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: str) -> datetime:
    if not isinstance(value, str):
        raise TypeError(f"expected an ISO timestamp string, got {type(value).__name__}")
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_found(found) -> Optional[int]:
    """
    `found` is an int, a string such as '>1000' when the API only gives a lower bound, or null.
    """
    if isinstance(found, bool):
        raise DecodeError(f"Unexpected value for 'found': {found!r}")
    if isinstance(found, int):
        return found
    if found is None:
        return None
    if isinstance(found, str):
        if found.startswith(">"):
            return None
        if found.isdigit():
            return int(found)
    raise DecodeError(f"Unexpected value for 'found': {found!r}")


def _optional_str(raw: Dict, key: str) -> Optional[str]:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _optional_float(value) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None
