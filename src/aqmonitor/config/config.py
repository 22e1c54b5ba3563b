import os
from dataclasses import dataclass

from aqmonitor.errors import ConfigurationError


@dataclass
class Config:
    """
    Configuration class for application settings.
    """

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))

    # API settings
    OPENAQ_API_BASE_URL: str = os.getenv(
        "OPENAQ_API_BASE_URL", "https://api.openaq.org/v2"
    )

    OPENAQ_API_KEY: str = os.getenv("OPENAQ_API_KEY", "")
    API_TIMEOUT: int = int(os.getenv("API_TIMEOUT", "30"))
    API_PAGE_LIMIT: int = int(os.getenv("API_PAGE_LIMIT", "1000"))
    API_MAX_PAGES: int = int(os.getenv("API_MAX_PAGES", "100"))
    API_MAX_RETRIES: int = int(os.getenv("API_MAX_RETRIES", "1"))

    # Application settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def database_url(self) -> str:
        """
        PostgreSQL connection string. DATABASE_URL wins over the individual POSTGRES_* settings.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        return f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    def validate(self, require_api_key: bool = True) -> None:
        """
        Checks that the settings required at startup are present.

        Args:
            require_api_key: Whether OPENAQ_API_KEY is mandatory for the operation being run.

        Raises:
            ConfigurationError: If a required setting is missing or invalid.
        """
        missing = []
        if not self.DATABASE_URL:
            for name in ("POSTGRES_USER", "POSTGRES_HOST", "POSTGRES_DB"):
                if not getattr(self, name):
                    missing.append(name)
        if require_api_key and not self.OPENAQ_API_KEY:
            missing.append("OPENAQ_API_KEY")

        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}"
            )

        if self.API_PAGE_LIMIT <= 0 or self.DB_POOL_SIZE <= 0:
            raise ConfigurationError(
                "API_PAGE_LIMIT and DB_POOL_SIZE must be positive integers"
            )


config = Config()
