import requests
from typing import Optional, Dict, Any
import functools
import time
from aqmonitor.config.logger import setup_logger
from aqmonitor.errors import (
    AuthError,
    DecodeError,
    RemoteStatusError,
    TransportError,
)

logger = setup_logger(__name__)

MAX_RETRIES = 1


def retry_request_on_failure(
    max_retries: Optional[int] = None, delay: float = 1.0, backoff: float = 2.0
):
    """
    Decorator that retries HTTP requests on transport failures with exponential backoff.
    HTTP status and decoding errors are never retried.

    Args:
        max_retries: Maximum number of attempts. None reads `max_retries` from the
            decorated method's instance, falling back to MAX_RETRIES.
        delay: Initial delay between retries in seconds.
        backoff: Backoff multiplier for exponential delay.

    Returns:
        Decorator function that wraps the original function with retry logic.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempts = max_retries
            if attempts is None:
                attempts = getattr(args[0], "max_retries", MAX_RETRIES) if args else MAX_RETRIES
            attempts = max(1, attempts)

            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except TransportError as e:
                    if attempt == attempts - 1:
                        if attempts > 1:
                            logger.error(
                                f"Request failed after {attempts} attempts: {e}"
                            )
                        raise
                    wait_time = delay * (backoff**attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{attempts}): {e}. Retrying in {wait_time}s..."
                    )
                    time.sleep(wait_time)

        return wrapper

    return decorator


class APIClient:
	def __init__(
		self,
		base_url: str,
		timeout: int = 30,
		api_key: Optional[str] = None,
		max_retries: int = MAX_RETRIES,
		session: Optional[requests.Session] = None,
	):
		"""
		Initialize the API client.

		Args:
			base_url: The base URL for the API.
			timeout: Request timeout in seconds, applied to every request.
			api_key: Optional API key, sent in the X-API-Key header.
			max_retries: Attempts per request on transport failures (1 disables retrying).
			session: Optional pre-built session, mostly useful for tests.
		"""
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout
		self.max_retries = max_retries
		self.session = session or requests.Session()
		self.session.headers.update({"Accept": "application/json"})

		if api_key:
			self.session.headers.update({"X-API-Key": api_key})

	@retry_request_on_failure(delay=1.0, backoff=2.0)
	def get(self, endpoint: str, params: Optional[Dict] = None) -> requests.Response:
		"""
		Make a GET request to the specified endpoint.

		Args:
			endpoint: The API endpoint to request.
			params: Optional query parameters to include in the request.

		Returns:
			requests.Response: The HTTP response object.

		Raises:
			TransportError: On connection errors and timeouts.
			AuthError: On HTTP 401 and 403.
			RemoteStatusError: On any other non-success status.
		"""
		url = f"{self.base_url}/{endpoint.lstrip('/')}"
		try:
			response = self.session.get(url, params=params, timeout=self.timeout)
		except requests.exceptions.Timeout as e:
			raise TransportError(f"Request to '{url}' timed out after {self.timeout}s") from e
		except requests.exceptions.RequestException as e:
			raise TransportError(f"Request to '{url}' failed: {e}") from e

		if response.status_code in (401, 403):
			logger.error(
				"API request to %s failed with status %d. Check OPENAQ_API_KEY validity and permissions.",
				url,
				response.status_code,
			)
			raise AuthError(f"API key rejected (HTTP {response.status_code})")

		if not response.ok:
			logger.error("API request to %s failed with status %d", url, response.status_code)
			raise RemoteStatusError(response.status_code)

		return response

	def get_json(self, endpoint: str, params: Optional[Dict] = None) -> Any:
		"""
		GET the endpoint and decode the JSON body.

		Raises:
			DecodeError: If the body is not valid JSON.
		"""
		response = self.get(endpoint, params=params)
		try:
			return response.json()
		except ValueError as e:
			logger.error("Error parsing API response JSON: %s", e)
			raise DecodeError(f"Response from '{endpoint}' is not valid JSON") from e

	def close(self):
		"""Close the session."""
		self.session.close()
