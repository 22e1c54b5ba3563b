import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from aqmonitor.config.config import Config, config as default_config
from aqmonitor.config.logger import setup_logger
from aqmonitor.db.handler import DBHandler
from aqmonitor.errors import StorageError, ValidationError
from aqmonitor.etl.openaq_client import OpenAQClient
from aqmonitor.etl.process_country import SOURCE_SYNTHETIC, CountryProcessor
from aqmonitor.etl.synthetic import SyntheticDataGenerator
from aqmonitor.insights import queries
from aqmonitor.models import (
    CityLatestMeasurements,
    CountryAirQuality,
    CountryImportResult,
    CountryRegistry,
    PollutionRanking,
    StoredMeasurement,
    default_registry,
)
from aqmonitor.utils.api_client import APIClient

logger = setup_logger(__name__)


class AirQualityPipeline:
    """Imports measurements for the registered countries and answers analytical queries."""

    def __init__(
        self,
        db_handler: DBHandler,
        openaq_client: OpenAQClient,
        registry: Optional[CountryRegistry] = None,
        generator: Optional[SyntheticDataGenerator] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            db_handler: Database handler.
            openaq_client: Client for the OpenAQ measurements endpoint.
            registry: Supported countries, defaults to the built-in registry.
            generator: Fallback data generator, defaults to an unseeded one over the registry.
        """
        self.db_handler = db_handler
        self.openaq_client = openaq_client
        self.registry = registry or default_registry()
        self.generator = generator or SyntheticDataGenerator(self.registry)
        self.country_processor = CountryProcessor(
            self.db_handler, self.openaq_client, self.generator
        )

    @classmethod
    def from_config(
        cls,
        app_config: Config = default_config,
        registry: Optional[CountryRegistry] = None,
        seed: Optional[int] = None,
    ) -> "AirQualityPipeline":
        """
        Builds the pipeline and its clients from configuration.
        """
        registry = registry or default_registry()
        db_handler = DBHandler(app_config)
        api_client = APIClient(
            base_url=app_config.OPENAQ_API_BASE_URL,
            timeout=app_config.API_TIMEOUT,
            api_key=app_config.OPENAQ_API_KEY,
            max_retries=app_config.API_MAX_RETRIES,
        )
        openaq_client = OpenAQClient(
            api_client,
            page_limit=app_config.API_PAGE_LIMIT,
            max_pages=app_config.API_MAX_PAGES,
        )
        logger.info("Initialized API client and database handler")

        generator = SyntheticDataGenerator(registry, rng=random.Random(seed))
        return cls(db_handler, openaq_client, registry=registry, generator=generator)

    def init_schema(self) -> None:
        self.db_handler.init_schema()

    def has_data(self) -> bool:
        return self.db_handler.has_data()

    def import_range(
        self, days: int, continue_on_error: bool = False
    ) -> List[CountryImportResult]:
        """
        Imports the last `days` days of measurements for every registered country.

        Countries are processed one at a time. API failures fall back to synthetic data.
        A storage failure aborts the run unless `continue_on_error` is set, in which case
        it is recorded on that country's result and the next country is processed.

        Args:
            days: Number of days of history to import.
            continue_on_error: Keep going after a country's storage failure.

        Returns:
            List[CountryImportResult]: One result per processed country, in registry order.
        """
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError(f"Number of days must be a positive integer, got {days!r}")

        date_to = datetime.now(timezone.utc)
        date_from = date_to - timedelta(days=days)
        logger.info(
            "Importing %d days of data (%s to %s) for %d countries",
            days,
            date_from.isoformat(),
            date_to.isoformat(),
            len(self.registry),
        )

        results = []
        for country in self.registry:
            logger.info("Processing country: %s (%s)", country.code, country.name)
            try:
                result = self.country_processor.process_country(
                    country.code, date_from, date_to
                )
            except StorageError as e:
                if not continue_on_error:
                    logger.error("Import aborted at %s: %s", country.code, e)
                    raise
                logger.error("Failed to store measurements for %s: %s", country.code, e)
                result = CountryImportResult(
                    country=country.code, source="", error=str(e)
                )
            results.append(result)

        logger.info(
            "Import finished: %d measurements inserted for %d countries (%d synthetic, %d failed)",
            sum(r.inserted for r in results),
            len(results),
            sum(1 for r in results if r.source == SOURCE_SYNTHETIC),
            sum(1 for r in results if not r.ok),
        )
        return results

    def most_polluted_country(self) -> PollutionRanking:
        return queries.get_most_polluted_country(self.db_handler, self.registry.codes)

    def average_for_country(
        self, country: str, days: int = queries.DEFAULT_AVERAGE_DAYS
    ) -> CountryAirQuality:
        country = self.registry.validate(country)
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError(f"Number of days must be a positive integer, got {days!r}")
        return queries.get_average_air_quality(self.db_handler, country, days)

    def measurements_for_country(self, country: str) -> List[StoredMeasurement]:
        country = self.registry.validate(country)
        return queries.get_measurements_for_country(self.db_handler, country)

    def latest_measurements_by_city(self, country: str) -> List[CityLatestMeasurements]:
        country = self.registry.validate(country)
        return queries.get_latest_measurements_by_city(self.db_handler, country)

    def close(self):
        """Clean up resources."""
        if self.openaq_client:
            self.openaq_client.api_client.close()
        if self.db_handler:
            self.db_handler.close()
