"""Custom exceptions for the search gateway."""

from typing import Optional


class SearchUnavailable(Exception):
    """Search request could not be completed.

    Raised on transport failures, timeouts, HTTP 4xx/5xx responses and
    responses that cannot be parsed. Callers treat it as a failure for the
    affected subscriber only; the dispatch run continues.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        attempts: int = 1,
    ) -> None:
        """Initialize search error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code if the service answered (None otherwise)
            url: URL that failed
            attempts: Number of attempts made before giving up
        """
        super().__init__(message)
        self.status_code = status_code
        self.url = url
        self.attempts = attempts
