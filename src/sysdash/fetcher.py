"""HTTP client for the metrics endpoint."""

from __future__ import annotations

import logging

import requests

from sysdash.models import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class FetchError(Exception):
    """A fetch cycle failed. ``str(err)`` is shown to the user."""


class NetworkError(FetchError):
    """The request could not be sent or did not complete."""


class HttpStatusError(FetchError):
    """The server answered with a non-success status code."""

    def __init__(self, status_code: int, reason: str | None = None) -> None:
        self.status_code = status_code
        self.reason = reason
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class ParseError(FetchError):
    """The response body was not valid JSON."""


class MetricsFetcher:
    """
    Fetches metrics snapshots from the system API server.

    One GET per call, no retries. Retrying is left to whoever drives the
    poll timer.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize the MetricsFetcher.

        Args:
            url: Full URL of the metrics endpoint.
            timeout: Request timeout in seconds.
            session: Optional requests session to reuse connections across cycles.
        """
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch(self) -> Snapshot:
        """
        Perform one fetch cycle.

        Raises:
            NetworkError: Connection failures and timeouts.
            HttpStatusError: Any status outside the 2xx range.
            ParseError: The body is not valid JSON.
        """
        logger.debug("GET %s", self.url)
        try:
            response = self._session.get(
                self.url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        except requests.RequestException as e:
            logger.warning("metrics request to %s failed: %s", self.url, e)
            raise NetworkError(str(e) or e.__class__.__name__) from e

        if not 200 <= response.status_code < 300:
            logger.warning("metrics endpoint %s returned %s", self.url, response.status_code)
            raise HttpStatusError(response.status_code, response.reason)

        try:
            payload = response.json()
        except ValueError as e:
            # requests raises a ValueError subclass whichever json backend it uses
            logger.warning("metrics endpoint %s returned invalid JSON: %s", self.url, e)
            raise ParseError(f"Invalid JSON: {e}") from e

        return Snapshot.from_json(payload)

    def close(self) -> None:
        self._session.close()


def fetch_snapshot(url: str, timeout: float = DEFAULT_TIMEOUT) -> Snapshot:
    """Fetch a single snapshot with a throwaway session."""
    fetcher = MetricsFetcher(url, timeout=timeout)
    try:
        return fetcher.fetch()
    finally:
        fetcher.close()
