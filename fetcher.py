"""
Polygon.io options-reference client.
Fetches the first page of option contracts for one underlying. Pagination is not followed.
"""

import logging
from typing import Optional

import requests

from config import MAX_PAGE_LIMIT, PLACEHOLDER_API_KEY, POLYGON_BASE_URL

logger = logging.getLogger(__name__)

CONTRACTS_PATH = "/v3/reference/options/contracts"
SUCCESS_STATUS = "OK"


# ── Errors ─────────────────────────────────────────────────────────────────────

class FetchError(Exception):
    """Base class for everything that can go wrong on the fetch path."""


class ConfigurationError(FetchError):
    """Credential missing or still the placeholder. Fix setup, retrying won't help."""


class TransportError(FetchError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class UpstreamStatusError(FetchError):
    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


# ── Client ─────────────────────────────────────────────────────────────────────

class PolygonClient:
    """Holds only the base URL and credential; safe to share across reruns."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = POLYGON_BASE_URL,
        limit: int = MAX_PAGE_LIMIT,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self.timeout = timeout
        self.session = session or requests.Session()

    def check_credentials(self) -> str:
        key = (self.api_key or "").strip()
        if not key or key == PLACEHOLDER_API_KEY:
            raise ConfigurationError(
                "Polygon.io API key is not configured. Set POLYGON_API_KEY in the environment or .env file."
            )
        return key

    def _mask(self, text: str) -> str:
        if self.api_key:
            return text.replace(self.api_key, "API_KEY_HIDDEN")
        return text

    def get_options_chain(
        self,
        underlying_ticker: str,
        expiration_date: Optional[str] = None,
        active: Optional[bool] = True,
    ) -> dict:
        """Return the raw response body for one page of contracts on underlying_ticker."""
        key = self.check_credentials()

        params = {
            "underlying_ticker": underlying_ticker,
            "limit": self.limit,
            "apiKey": key,
        }
        if active is not None:
            params["active"] = "true" if active else "false"
        if expiration_date:
            params["expiration_date"] = expiration_date

        url = f"{self.base_url}{CONTRACTS_PATH}"
        logger.info("Requesting options contracts: %s underlying=%s limit=%s", url, underlying_ticker, self.limit)

        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(self._mask(f"Network error while fetching options chain: {e}")) from e

        logger.info("Response status: %s", resp.status_code)
        if not resp.ok:
            body = self._mask(resp.text or "")
            logger.error("API error response (%s): %s", resp.status_code, body)
            raise TransportError(
                f"HTTP error! status: {resp.status_code} - {body}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamStatusError("API error: response body is not valid JSON") from e

        status = data.get("status") if isinstance(data, dict) else None
        results = data.get("results") if isinstance(data, dict) else None
        logger.info(
            "API response: status=%s count=%s results=%s",
            status,
            data.get("count") if isinstance(data, dict) else None,
            len(results) if isinstance(results, list) else 0,
        )
        if status != SUCCESS_STATUS:
            raise UpstreamStatusError(f"API error: {status}", status=status)
        if data.get("next_url"):
            logger.debug("Ignoring next_url; only the first page is consumed")
        return data


def client_from_settings(settings) -> PolygonClient:
    return PolygonClient(
        api_key=settings.api_key,
        base_url=settings.POLYGON_BASE_URL,
        limit=settings.POLYGON_PAGE_LIMIT,
        timeout=settings.POLYGON_TIMEOUT,
    )
