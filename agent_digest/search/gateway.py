"""HTTP gateway to the listing search service.

Sends compiled SearchRequests to the <indices>/_search endpoint as a GET
with a JSON body and parses the response into a SearchResult. Transport
failures, timeouts, HTTP errors and malformed responses are retried with
exponential backoff and finally raised as SearchUnavailable.
"""

import time
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from agent_digest.config.models import SearchConfig
from agent_digest.domain.models import Hit, SearchResult
from agent_digest.logging import get_logger

from .exceptions import SearchUnavailable
from .query import SearchRequest

logger = get_logger(__name__, component="search")

MAX_RETRY_DELAY_SECONDS = 60.0


class SearchGateway:
    """Executes search requests against the search service.

    The underlying requests.Session is shared by worker threads; each call
    issues an independent request with its own timeout.

    Attributes:
        base_url: Search service base URL (no trailing slash)
        timeout: Per-request timeout in seconds
        max_retries: Retry attempts after the first failure
    """

    def __init__(self, search_config: SearchConfig, session: Optional[requests.Session] = None):
        """Initialize gateway.

        Args:
            search_config: Search settings (URL, timeout, retry policy)
            session: Optional requests session (created if None)
        """
        self.base_url = search_config.url.rstrip("/")
        self.timeout = search_config.timeout
        self.max_retries = search_config.max_retries
        self.retry_initial_delay = search_config.retry_initial_delay
        self.retry_backoff_multiplier = search_config.retry_backoff_multiplier

        self._session = session or requests.Session()
        self._session.headers.update(
            {"Content-Type": "application/json", "User-Agent": search_config.user_agent}
        )

    def execute(self, indices: str, request: SearchRequest) -> SearchResult:
        """Run a search request, retrying transient failures.

        Args:
            indices: Index target (e.g. "offers-en,offers-ru" or "offers-*")
            request: Compiled search request

        Returns:
            SearchResult with total hit count and ranked hits

        Raises:
            SearchUnavailable: If every attempt failed
        """
        url = f"{self.base_url}/{indices}/_search"
        body = request.to_body()
        max_attempts = self.max_retries + 1
        last_error: Optional[SearchUnavailable] = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = self.retry_initial_delay * (
                    self.retry_backoff_multiplier ** (attempt - 2)
                )
                delay = min(delay, MAX_RETRY_DELAY_SECONDS)
                logger.warning(
                    f"Retrying search on {indices} (attempt {attempt}/{max_attempts}) after {delay:.1f}s delay",
                    extra={
                        "event": "search.request.retry",
                        "attempt": attempt,
                        "indices": indices,
                    },
                )
                time.sleep(delay)

            try:
                data = self._request(url, body)
                return self._parse_response(data, url)
            except SearchUnavailable as e:
                last_error = e
                logger.warning(
                    f"Search attempt {attempt}/{max_attempts} failed: {e}",
                    extra={
                        "event": "search.request.failed",
                        "attempt": attempt,
                        "status_code": e.status_code,
                        "retry_remaining": attempt < max_attempts,
                    },
                )

        raise SearchUnavailable(
            f"Search on {indices} failed after {max_attempts} attempts: {last_error}",
            status_code=last_error.status_code if last_error else None,
            url=url,
            attempts=max_attempts,
        )

    def _request(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Issue one GET-with-body request and decode the JSON response.

        Raises:
            SearchUnavailable: On timeout, transport error, HTTP >= 400 or invalid JSON
        """
        try:
            logger.debug(
                f"HTTP GET request to {url}",
                extra={
                    "event": "search.request",
                    "url": url,
                    "timeout": self.timeout,
                },
            )

            response = self._session.request(
                method="GET",
                url=url,
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise SearchUnavailable(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            raise SearchUnavailable(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            raise SearchUnavailable(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except (ValueError, requests.exceptions.JSONDecodeError) as e:
            raise SearchUnavailable(
                f"Failed to parse JSON response from {url}: {e}",
                status_code=response.status_code,
                url=url,
            ) from e

    @staticmethod
    def _parse_response(data: Any, url: str) -> SearchResult:
        """Convert the decoded response body into a SearchResult.

        Accepts both the integer and the {"value": n} forms of hits.total.

        Raises:
            SearchUnavailable: If the response lacks hits.total or holds an invalid hit
        """
        hits_section = data.get("hits") if isinstance(data, dict) else None
        if not isinstance(hits_section, dict) or "total" not in hits_section:
            raise SearchUnavailable(f"Malformed search response from {url}: missing hits.total", url=url)

        total = hits_section["total"]
        if isinstance(total, dict):
            total = total.get("value")

        try:
            total_hits = int(total)
        except (TypeError, ValueError) as e:
            raise SearchUnavailable(
                f"Malformed search response from {url}: invalid hits.total {total!r}", url=url
            ) from e

        try:
            hits = [Hit.from_search_hit(raw) for raw in hits_section.get("hits") or []]
        except ValidationError as e:
            raise SearchUnavailable(f"Malformed search response from {url}: invalid hit: {e}", url=url) from e

        logger.debug(
            "Search request succeeded",
            extra={
                "event": "search.request.succeeded",
                "total_hits": total_hits,
                "returned": len(hits),
            },
        )

        return SearchResult(total_hits=total_hits, hits=hits)
