"""SonarQube API client.

Usage:
    with SonarClient(url="http://localhost:9000", token="squ_xxx") as client:
        data   = client.get("/api/server/version")
        issues = client.get_paginated("/api/issues/search", params, results_key="issues")
"""

import logging
from typing import Any

import requests

PAGE_SIZE = 500
PAGINATION_LIMIT = 10_000

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SonarClientError(Exception):
    """Base exception for all client errors."""


class AuthenticationError(SonarClientError):
    """Raised on HTTP 401 — invalid or expired token."""


class NotFoundError(SonarClientError):
    """Raised on HTTP 404 — project or resource not found."""


class NetworkError(SonarClientError):
    """Raised on connection timeout or unreachable server."""


class RetrievalDivergence(SonarClientError):
    """Raised when pagination cannot reach the total declared by the server."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SonarClient:
    """Thin wrapper around the SonarQube REST API."""

    def __init__(self, url: str, token: str, timeout: int = 30) -> None:
        self.base_url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._session = requests.Session()
        # SonarQube auth: token as username, empty password
        self._session.auth = (token, "")

    def __enter__(self) -> "SonarClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Perform a single GET request and return the parsed JSON response.

        Raises:
            AuthenticationError: HTTP 401
            NotFoundError:       HTTP 404
            SonarClientError:    Any other non-2xx response
            NetworkError:        Timeout or connection failure
        """
        return self._request(endpoint, params or {})

    def get_paginated(
        self,
        endpoint: str,
        params: dict[str, Any],
        results_key: str,
        page_size: int = PAGE_SIZE,
    ) -> list[dict]:
        """Fetch all pages for an endpoint and return a flat list of results.

        SonarQube paginates via ``p`` (1-based page number) and ``ps`` (page
        size). The total result count is in ``response["paging"]["total"]``
        and is authoritative: collection stops once exactly that many items
        have been retrieved, not when a page comes back short.

        If the total changes between two pages, the latest value wins and a
        warning is logged. Results may then be incomplete or duplicated;
        nothing guards against concurrent writes on the server. Collection
        never reads past the first total the server declared, so a total
        that keeps growing ends in RetrievalDivergence instead of paging
        forever.

        Args:
            endpoint:    API path, e.g. ``/api/issues/search``
            params:      Query parameters (do not include ``p`` or ``ps``)
            results_key: Key in the response JSON that holds the results list
            page_size:   Number of items requested per page

        Raises:
            RetrievalDivergence: a page brings nothing new before the total
                                 is reached, more items than the total were
                                 returned, the response has no total, the
                                 total exceeds PAGINATION_LIMIT (SonarQube
                                 refuses to page beyond 10 000 results), the
                                 items collected already reach the first
                                 declared total, or the next page would
                                 start past the 10 000 cap.
        """
        all_results: list[dict] = []
        page = 1
        total: int | None = None
        first_total: int | None = None

        while True:
            page_params = {**params, "ps": page_size, "p": page}
            data = self._request(endpoint, page_params)

            results = data.get(results_key, [])
            all_results.extend(results)

            declared = data.get("paging", {}).get("total")
            if declared is None:
                raise RetrievalDivergence(
                    f"Response for page {page} of '{endpoint}' has no paging total"
                )
            declared = int(declared)
            if total is not None and declared != total:
                logger.warning(
                    "Total number of results changed from %d to %d on page %d",
                    total, declared, page,
                )
            total = declared
            if first_total is None:
                first_total = total
            logger.info("Collected %s: %d / %d", results_key, len(all_results), total)

            if total > PAGINATION_LIMIT:
                raise RetrievalDivergence(
                    f"Result set exceeds {PAGINATION_LIMIT} items (total={total}). "
                    "SonarQube caps pagination at 10 000, filter the query to "
                    "reduce the result set."
                )
            if len(all_results) == total:
                return all_results
            if len(all_results) > total:
                raise RetrievalDivergence(
                    f"Collected {len(all_results)} {results_key} but the server "
                    f"declares only {total}"
                )
            if not results:
                raise RetrievalDivergence(
                    f"Page {page} returned no {results_key} after {len(all_results)} "
                    f"of {total}; pagination cannot converge"
                )
            if len(all_results) >= first_total:
                raise RetrievalDivergence(
                    f"Total of {results_key} grew from {first_total} to {total} "
                    f"while paging; pagination cannot converge"
                )
            if page * page_size >= PAGINATION_LIMIT:
                raise RetrievalDivergence(
                    f"Page {page + 1} would start past the first {PAGINATION_LIMIT} "
                    f"{results_key}, which SonarQube does not serve"
                )

            page += 1

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(self, endpoint: str, params: dict[str, Any]) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(
                f"Request timed out after {self._timeout}s while contacting '{url}'"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(
                f"Unable to reach SonarQube server at '{self.base_url}'"
            ) from exc

        if response.status_code == 401:
            raise AuthenticationError(
                "Authentication failed — check that your token is valid and not expired."
            )
        if response.status_code == 404:
            raise NotFoundError(
                f"Resource not found: {url}"
            )
        if not response.ok:
            raise SonarClientError(
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}"
            )

        return response.json()
