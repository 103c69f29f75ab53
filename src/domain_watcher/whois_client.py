"""
Async WHOIS client for whoisjson.com.

Performs a single availability query per call and categorizes the outcome
as available, taken or failed. There are no retries: a failed query is
reported to the caller, which decides what to do with it.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

import httpx

# Keep httpx request logging quiet by default (requests carry the API token)
# Set DOMAIN_WATCHER_DEBUG=1 to enable verbose HTTP logging
if not os.environ.get("DOMAIN_WATCHER_DEBUG"):
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

WHOIS_API_URL = "https://whoisjson.com/api/v1/whois"

NO_ERROR_MESSAGE = "No error message provided by API."


class LookupStatus(Enum):
    """Status categories for a domain availability check."""

    AVAILABLE = "available"  # registered == false
    TAKEN = "taken"  # registered == true, or field missing
    ERROR = "error"  # HTTP error status, transport failure, unparseable body


@dataclass
class LookupResult:
    """Result of one availability check."""

    domain: str
    status: LookupStatus
    error_type: str | None = None  # "http_error", "network", "timeout", "invalid_response"
    error_message: str | None = None
    status_code: int | None = None

    @property
    def available(self) -> bool:
        """True only if confirmed available."""
        return self.status == LookupStatus.AVAILABLE

    @property
    def failed(self) -> bool:
        """True if the query itself failed."""
        return self.status == LookupStatus.ERROR

    def describe(self) -> str:
        """One-line human readable summary of the failure."""
        if self.status_code is not None:
            return f"Request failed with status {self.status_code}: {self.error_message}"
        return f"{self.error_type}: {self.error_message}"


def _error_message(response: httpx.Response) -> str:
    """Extract the provider's error message from an error response."""
    try:
        data = response.json()
    except ValueError:
        return NO_ERROR_MESSAGE

    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str):
            return message
    return NO_ERROR_MESSAGE


def _is_registered(data) -> bool:
    """
    Read the "registered" flag from a WHOIS payload.

    Anything other than an explicit boolean false counts as registered, so a
    malformed payload never reports a false positive.
    """
    if not isinstance(data, dict):
        return True
    return data.get("registered") is not False


class AsyncWhoisClient:
    """
    Async whoisjson.com client.

    Usage:
        async with AsyncWhoisClient(api_key) as client:
            result = await client.check_domain("example.com")
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncWhoisClient":
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers={
                "Accept": "application/json",
                "Authorization": f"TOKEN={self._api_key}",
            },
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def check_domain(self, domain: str) -> LookupResult:
        """Check a single domain."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        try:
            response = await self._client.get(
                WHOIS_API_URL,
                params={"domain": domain, "format": "json"},
            )
        except httpx.TimeoutException as e:
            return LookupResult(
                domain=domain,
                status=LookupStatus.ERROR,
                error_type="timeout",
                error_message=str(e) or "Request timed out",
            )
        except httpx.HTTPError as e:
            return LookupResult(
                domain=domain,
                status=LookupStatus.ERROR,
                error_type="network",
                error_message=str(e)[:200] or e.__class__.__name__,
            )

        # Client and server errors are treated alike
        if response.is_client_error or response.is_server_error:
            return LookupResult(
                domain=domain,
                status=LookupStatus.ERROR,
                error_type="http_error",
                error_message=_error_message(response),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            return LookupResult(
                domain=domain,
                status=LookupStatus.ERROR,
                error_type="invalid_response",
                error_message=f"Invalid JSON: {e}",
            )

        if _is_registered(data):
            return LookupResult(domain=domain, status=LookupStatus.TAKEN)
        return LookupResult(domain=domain, status=LookupStatus.AVAILABLE)


async def check_availability(
    domain: str,
    api_key: str,
    timeout: float = 30.0,
) -> LookupResult:
    """
    Convenience function for checking a domain without managing client lifecycle.

    Args:
        domain: Domain name to check
        api_key: whoisjson.com API token
        timeout: Request timeout in seconds

    Returns:
        LookupResult
    """
    async with AsyncWhoisClient(api_key, timeout=timeout) as client:
        return await client.check_domain(domain)
