from typing import Iterable, Optional


class AirQualityError(Exception):
    """Base class for every error raised by aqmonitor."""


class RemoteSourceError(AirQualityError):
    """The OpenAQ API could not deliver a usable response."""


class TransportError(RemoteSourceError):
    """Connection failure or timeout while talking to the API."""


class AuthError(RemoteSourceError):
    """The API rejected the configured API key (HTTP 401/403)."""


class RemoteStatusError(RemoteSourceError):
    """Any other non-success HTTP status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"API returned HTTP {status_code}")


class DecodeError(RemoteSourceError):
    """Response body does not match the expected schema."""


class StorageError(AirQualityError):
    """Connection, query or transaction failure in the database."""


class ValidationError(AirQualityError):
    """
    Invalid user input, e.g. a country code outside the registry.
    """

    def __init__(self, message: str, valid_codes: Optional[Iterable[str]] = None):
        self.valid_codes = list(valid_codes or [])
        if self.valid_codes:
            message = f"{message}. Valid country codes: {', '.join(self.valid_codes)}"
        super().__init__(message)


class ConfigurationError(AirQualityError):
    """Required startup settings are missing or invalid."""
