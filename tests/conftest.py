from datetime import datetime, timedelta, timezone

import pytest

from aqmonitor.config.config import Config
from aqmonitor.db.handler import DBHandler
from aqmonitor.models import Measurement, Parameter, default_registry


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self.text is not None:
            raise ValueError(f"Expecting value: {self.text!r}")
        return self._payload


class FakeSession:
    """
    Stands in for requests.Session. Each queued item is returned (or raised) by one get() call.
    """

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url} with {params}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def measurements_page(results, found, page=1, limit=1000):
    return FakeResponse(
        payload={
            "meta": {"name": "openaq-api", "page": page, "limit": limit, "found": found},
            "results": results,
        }
    )


def api_result(location_id=1, parameter="pm25", value=12.5, utc="2024-05-01T10:00:00Z", **extra):
    result = {
        "locationId": location_id,
        "location": f"Station {location_id}",
        "parameter": parameter,
        "value": value,
        "date": {"utc": utc, "local": "2024-05-01T12:00:00+02:00"},
        "unit": "µg/m³",
        "coordinates": {"latitude": 52.1, "longitude": 4.3},
        "country": "NL",
        "city": "Amsterdam",
    }
    result.update(extra)
    return result


def make_measurement(
    country="NL",
    parameter=Parameter.PM25,
    value=10.0,
    hours_ago=1.0,
    location_id=1,
    city="Amsterdam",
    now=None,
):
    timestamp = (now or datetime.now(timezone.utc)) - timedelta(hours=hours_ago)
    return Measurement(
        location_id=location_id,
        location=f"Station {location_id}",
        parameter=parameter,
        value=value,
        unit=parameter.unit,
        date_utc=timestamp,
        date_local=timestamp.isoformat(),
        country=country,
        city=city,
        latitude=52.0,
        longitude=4.0,
    )


@pytest.fixture
def app_config():
    return Config(
        DATABASE_URL="",
        POSTGRES_USER="aq",
        POSTGRES_PASSWORD="secret",
        POSTGRES_HOST="db",
        POSTGRES_PORT="5432",
        POSTGRES_DB="airquality",
        OPENAQ_API_KEY="test-key",
        DB_POOL_SIZE=5,
        DB_POOL_TIMEOUT=5,
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'airquality.db'}"


@pytest.fixture
def db_handler(app_config, database_url):
    handler = DBHandler(app_config, database_url=database_url)
    handler.init_schema()
    yield handler
    handler.close()


@pytest.fixture
def registry():
    return default_registry()
