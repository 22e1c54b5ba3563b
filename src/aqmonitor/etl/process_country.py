from datetime import datetime
from typing import List, Tuple

from aqmonitor.config.logger import setup_logger
from aqmonitor.db.handler import DBHandler
from aqmonitor.errors import RemoteSourceError
from aqmonitor.etl.openaq_client import OpenAQClient
from aqmonitor.etl.synthetic import SyntheticDataGenerator
from aqmonitor.models import CountryImportResult, Measurement

logger = setup_logger(__name__)

SOURCE_OPENAQ = "openaq"
SOURCE_SYNTHETIC = "synthetic"


class CountryProcessor:
    """
    Runs one country's fetch-or-fallback-then-insert cycle.
    """

    def __init__(
        self,
        db_client: DBHandler,
        openaq_client: OpenAQClient,
        generator: SyntheticDataGenerator,
    ):
        """
        Initialize the CountryProcessor.

        Args:
            db_client: Database handler for database operations.
            openaq_client: Client for the OpenAQ measurements endpoint.
            generator: Synthetic data generator used when the API fails.
        """
        self.db_client = db_client
        self.openaq_client = openaq_client
        self.generator = generator

    def process_country(
        self, country: str, date_from: datetime, date_to: datetime
    ) -> CountryImportResult:
        """
        Fetches measurements for a country, falling back to synthetic data on API
        failure, and stores them.

        Args:
            country: Registered ISO alpha-2 country code.
            date_from: Start of the range (UTC).
            date_to: End of the range (UTC).

        Returns:
            CountryImportResult: Where the data came from and how many rows were stored.

        Raises:
            StorageError: If the batch could not be stored.
        """
        measurements, source = self._fetch_or_generate(country, date_from, date_to)

        inserted = self.db_client.insert_measurements(measurements)
        logger.info(
            "Stored %d of %d %s measurements for %s",
            inserted,
            len(measurements),
            source,
            country,
        )
        return CountryImportResult(
            country=country,
            source=source,
            fetched=len(measurements),
            inserted=inserted,
        )

    def _fetch_or_generate(
        self, country: str, date_from: datetime, date_to: datetime
    ) -> Tuple[List[Measurement], str]:
        try:
            return (
                self.openaq_client.fetch_measurements(country, date_from, date_to),
                SOURCE_OPENAQ,
            )
        except RemoteSourceError as e:
            logger.warning(
                "OpenAQ fetch failed for %s (%s: %s). Falling back to synthetic data.",
                country,
                type(e).__name__,
                e,
            )

        measurements = self.generator.generate(country, date_from, date_to)
        logger.info("Generated %d synthetic measurements for %s", len(measurements), country)
        return measurements, SOURCE_SYNTHETIC
