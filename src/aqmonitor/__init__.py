"""Air quality ingestion and analytics for a fixed set of countries, backed by OpenAQ."""

__version__ = "0.1.0"
