"""HTTP client for the external OpenSearch manuscript index."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from catalogue.common.request_context import get_request_id, record_search_call
from catalogue.core.config import settings

logger = logging.getLogger(__name__)


class SearchRequestError(Exception):
    """Raised when the search backend rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SearchClient:
    """POSTs query documents to `<SEARCH_API_URL>/<SEARCH_API_INDEX>/_search`."""

    def __init__(
        self,
        endpoint: str | None = None,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.endpoint = endpoint or settings.search_endpoint
        username = settings.SEARCH_API_USER if username is None else username
        password = settings.SEARCH_API_PASS if password is None else password
        self._client = httpx.Client(
            auth=httpx.BasicAuth(username, password),
            timeout=settings.SEARCH_REQUEST_TIMEOUT_S if timeout is None else timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def search(self, body: dict[str, Any]) -> dict[str, Any]:
        """
        Run one search request.

        Raises:
            SearchRequestError: on a non-success status or transport failure
        """
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Search query payload: %s", json.dumps(body, ensure_ascii=False))

        start = time.perf_counter()
        try:
            resp = self._client.post(self.endpoint, json=body)
        except httpx.HTTPError as e:
            logger.warning("Search request failed: %s", e, extra={"request_id": get_request_id()})
            raise SearchRequestError(f"Search request failed: {e}") from e
        finally:
            record_search_call((time.perf_counter() - start) * 1000)

        if not resp.is_success:
            logger.warning(
                "Search backend returned an error status",
                extra={
                    "status_code": resp.status_code,
                    "endpoint": self.endpoint,
                    "request_id": get_request_id(),
                },
            )
            raise SearchRequestError(f"Search failed: {resp.status_code}", status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise SearchRequestError("Search failed: invalid response body") from e

    def ping(self) -> bool:
        """Return True if the index answers. Never raises."""
        index_url = self.endpoint.rsplit("/_search", 1)[0]
        try:
            resp = self._client.head(index_url)
        except httpx.HTTPError as e:
            logger.debug("Search backend ping failed: %s", e)
            return False
        return resp.is_success

    def close(self) -> None:
        self._client.close()


# Singleton client instance
_search_client: SearchClient | None = None


def get_search_client() -> SearchClient:
    """Get the process-wide SearchClient."""
    global _search_client
    if _search_client is None:
        _search_client = SearchClient()
    return _search_client


def reset_client() -> None:
    """Reset the singleton client (useful for testing)."""
    global _search_client
    if _search_client is not None:
        _search_client.close()
    _search_client = None
