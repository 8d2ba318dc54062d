"""
Shared async HTTP plumbing for the Google Gmail and Calendar clients.
Handles client lifecycle, retries with backoff, and error classification.
"""

import asyncio

import httpx

from pulse.config import settings
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 3
BACKOFF_FACTOR = 0.5
# 429 is not retried here: rate limiting surfaces to the caller as-is
RETRY_STATUS_CODES = {500, 502, 503, 504}

API_NOT_ENABLED_MARKERS = ("has not been used in project", "is disabled")


class GoogleAPIError(Exception):
    """Google API failure with the HTTP status and a user-facing message."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.response_data = response_data or {}


class GoogleAPIClient:
    """
    Base class for Google REST clients.

    Subclasses set SERVICE_NAME and CONSOLE_API_URL, which feed the
    "API not enabled" message shown to the user.
    """

    SERVICE_NAME = "Google"
    CONSOLE_API_URL = "https://console.cloud.google.com/apis/library"

    def __init__(self, timeout_seconds: float | None = None):
        self._timeout_seconds = timeout_seconds or settings.GOOGLE_REQUEST_TIMEOUT_SECONDS
        self._client = self._create_client()

    def _create_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self._timeout_seconds)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        return httpx.AsyncClient(timeout=timeout, limits=limits)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _get_auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    async def _request_with_retry(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Execute an HTTP request, retrying 5xx responses and transport errors with backoff."""
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        f"{self.SERVICE_NAME} API retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    logger.error(
                        f"{self.SERVICE_NAME} API request failed",
                        attempts=attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    error_code = "timeout" if isinstance(e, httpx.TimeoutException) else "network_error"
                    raise GoogleAPIError(
                        f"{self.SERVICE_NAME} API request failed: {e}", error_code=error_code
                    ) from e
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    f"{self.SERVICE_NAME} API request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError(f"{self.SERVICE_NAME} API retry loop exhausted")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict:
        """
        Validate a Google API response and return its JSON body.

        Raises:
            GoogleAPIError: If the response is an error or not valid JSON
        """
        if response.is_success:
            try:
                return response.json() if response.text else {}
            except ValueError as e:
                logger.error(f"Failed to parse {self.SERVICE_NAME} API {operation} response", error=str(e))
                raise GoogleAPIError(f"Invalid response format: {e}", status_code=response.status_code) from e

        try:
            error_data = response.json() if response.text else {}
        except ValueError:
            error_data = {}

        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        if not isinstance(error_info, dict):
            # OAuth-style errors put a string here
            error_info = {"message": str(error_info)}
        error_message = error_info.get("message") or response.text[:200] or response.reason_phrase
        error_code = str(error_info.get("status") or error_info.get("code") or response.status_code)

        logger.error(
            f"{self.SERVICE_NAME} API {operation} failed",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

        raise GoogleAPIError(
            self._map_api_error(response.status_code, error_message),
            error_code=error_code,
            status_code=response.status_code,
            response_data=error_data,
        )

    def _map_api_error(self, status_code: int, error_message: str) -> str:
        """Map a Google API error to a message the user can act on."""
        if status_code == 403:
            if any(marker in error_message for marker in API_NOT_ENABLED_MARKERS):
                return (
                    f"{self.SERVICE_NAME} API is not enabled for your Google Cloud project. "
                    f"Enable it at {self.CONSOLE_API_URL} and wait a few minutes before retrying."
                )
            return f"Google API access denied: {error_message}"
        if status_code == 401:
            return "Google authentication expired. Please sign out and sign in again."
        if status_code == 429:
            return "Google API rate limit exceeded. Please wait a few minutes and try again."
        return f"Google API error ({status_code}): {error_message}"
