from contextlib import contextmanager
from typing import Iterator, List, Optional

import sqlalchemy as sa
import sqlalchemy.dialects.postgresql as sap
import sqlalchemy.dialects.sqlite as sal
from sqlalchemy.exc import SQLAlchemyError

from aqmonitor.config.config import Config
from aqmonitor.config.logger import setup_logger
from aqmonitor.db.schema import NATURAL_KEY, measurements, metadata
from aqmonitor.errors import StorageError
from aqmonitor.models import Measurement

logger = setup_logger(__name__)


class DBHandler:
    """
    Database handler for managing database connections and measurement storage.
    """

    def __init__(self, config: Config, database_url: Optional[str] = None):
        """
        Initialize the database handler.

        Args:
            config: Configuration object containing database connection parameters.
            database_url: Optional connection string overriding the one built from config.
        """
        self.config: Config = config
        self.connection_string = database_url or self.config.database_url
        self.engine = self.__create_engine()
        self.metadata = metadata
        self.measurements = measurements

    def __create_engine(self) -> sa.engine.Engine:
        """
        Create a SQLAlchemy engine with a bounded connection pool.

        Returns:
            sa.engine.Engine: The SQLAlchemy engine instance.
        """
        connect_args = {}
        if self.connection_string.startswith("postgresql"):
            connect_args["options"] = (
                f"-c statement_timeout={self.config.DB_STATEMENT_TIMEOUT_MS}"
            )

        try:
            return sa.create_engine(
                self.connection_string,
                pool_size=self.config.DB_POOL_SIZE,
                max_overflow=0,
                pool_timeout=self.config.DB_POOL_TIMEOUT,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
        except (SQLAlchemyError, ImportError, ValueError) as e:
            logger.error("Failed to create database engine: %s", e)
            raise StorageError(f"Could not create database engine: {e}") from e

    @contextmanager
    def connect(self) -> Iterator[sa.Connection]:
        """
        Yields a pooled connection; SQLAlchemy failures surface as StorageError.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as e:
            logger.error("Database operation failed: %s", e)
            raise StorageError(f"Database operation failed: {e}") from e

    def init_schema(self) -> None:
        """
        Creates the measurements table, its natural key constraint and indexes.
        Safe to call on every start.
        """
        logger.info("Initializing database schema...")
        try:
            self.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            logger.error("Failed to initialize database schema: %s", e)
            raise StorageError(f"Failed to initialize database schema: {e}") from e
        logger.info("Database schema initialized successfully")

    def is_schema_initialized(self) -> bool:
        try:
            return sa.inspect(self.engine).has_table(self.measurements.name)
        except SQLAlchemyError as e:
            logger.error("Failed to check schema existence: %s", e)
            raise StorageError(f"Failed to check schema existence: {e}") from e

    def has_data(self) -> bool:
        """
        Whether at least one measurement has been imported.
        """
        if not self.is_schema_initialized():
            return False

        stmt = sa.select(self.measurements.c.id).limit(1)
        with self.connect() as conn:
            return conn.execute(stmt).first() is not None

    def _insert_ignore_statement(self):
        """
        INSERT ... ON CONFLICT (natural key) DO NOTHING for the engine's dialect.
        """
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            insert = sap.insert
        elif dialect == "sqlite":
            insert = sal.insert
        else:
            raise StorageError(f"Unsupported database dialect: {dialect}")

        return insert(self.measurements).on_conflict_do_nothing(index_elements=list(NATURAL_KEY))

    def insert_measurements(self, data: List[Measurement]) -> int:
        """
        Inserts a batch of measurements in a single transaction.

        Rows are inserted one by one on the same connection. Rows that collide with an
        existing natural key are skipped; any other failure rolls back the whole batch.

        Args:
            data (List[Measurement]): Measurements to insert.

        Returns:
            int: Number of rows actually inserted.

        Raises:
            StorageError: If the transaction could not be completed.
        """
        if not data:
            logger.debug("No measurements provided for insertion.")
            return 0

        logger.info("Preparing to insert %d measurements into database...", len(data))
        repeated = len(data) - len({measurement.natural_key for measurement in data})
        if repeated:
            logger.debug("Batch repeats %d natural keys; repeats will be skipped", repeated)

        stmt = self._insert_ignore_statement()
        inserted = 0

        try:
            with self.engine.begin() as conn:
                for measurement in data:
                    result = conn.execute(stmt, measurement.to_row())
                    inserted += max(result.rowcount, 0)
        except SQLAlchemyError as e:
            logger.error("Failed to insert measurement batch, transaction rolled back: %s", e)
            raise StorageError(f"Failed to insert measurements: {e}") from e

        logger.info(
            "Inserted %d of %d measurements (%d duplicates skipped).",
            inserted,
            len(data),
            len(data) - inserted,
        )
        return inserted

    def count_measurements(self, country: Optional[str] = None) -> int:
        stmt = sa.select(sa.func.count()).select_from(self.measurements)
        if country:
            stmt = stmt.where(self.measurements.c.country == country)

        with self.connect() as conn:
            return conn.execute(stmt).scalar_one()

    def close(self):
        """
        Disposes the connection pool
        """
        self.engine.dispose()
