"""Error types raised by the Meta Ads client and authentication flows."""

from typing import Any, Dict, Optional


class MetaAdsError(Exception):
    """Base exception for every classified failure in this package."""

    pass


class TransportError(MetaAdsError):
    """Raised when the request never produced an HTTP response.

    Covers DNS failures, refused connections and timeouts. The underlying
    httpx exception is chained as ``__cause__``.
    """

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class HTTPStatusError(MetaAdsError):
    """Raised for a non-2xx response whose body is not a Graph API error envelope."""

    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


# Codes documented by Meta as throttling errors
RATE_LIMIT_CODES = {4, 17, 32, 613}
AUTH_ERROR_CODES = {102, 190}


class GraphAPIError(MetaAdsError):
    """Exception raised for errors from the Graph API.

    The Graph API sometimes answers HTTP 200 with an ``{"error": {...}}`` body,
    so this is raised whenever that envelope is present, regardless of status.
    """

    def __init__(
        self,
        code: int,
        message: str,
        subcode: Optional[int] = None,
        error_type: str = "",
        fbtrace_id: Optional[str] = None,
    ) -> None:
        self.code = code
        self.subcode = subcode
        self.message = message
        self.type = error_type
        self.fbtrace_id = fbtrace_id
        if subcode:
            text = f"meta api error {code} (subcode {subcode}): {message}"
        else:
            text = f"meta api error {code}: {message}"
        super().__init__(text)

    @classmethod
    def from_envelope(cls, error_data: Dict[str, Any]) -> "GraphAPIError":
        """Create from the ``error`` object of a Graph API response."""
        try:
            code = int(error_data.get("code", 0))
        except (TypeError, ValueError):
            code = 0
        subcode = error_data.get("error_subcode")
        return cls(
            code=code,
            message=str(error_data.get("message", "Unknown Graph API error")),
            subcode=subcode if isinstance(subcode, int) else None,
            error_type=str(error_data.get("type", "")),
            fbtrace_id=error_data.get("fbtrace_id"),
        )

    @property
    def is_auth_error(self) -> bool:
        return self.code in AUTH_ERROR_CODES

    @property
    def is_rate_limited(self) -> bool:
        return self.code in RATE_LIMIT_CODES or 80000 <= self.code < 81000


class PaginationError(MetaAdsError):
    """Raised when following a ``paging.next`` cursor fails.

    The whole list operation is abandoned; records from earlier pages are
    never returned.
    """

    def __init__(self, page: int, cursor: str, reason: str) -> None:
        self.page = page
        self.cursor = cursor
        self.reason = reason
        super().__init__(f"Pagination failed on page {page}: {reason}")


class AuthFlowError(MetaAdsError):
    """Raised for any failure during login or token exchange."""

    pass


class NotAuthenticatedError(MetaAdsError):
    """Raised when no credential source yields an access token."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or "not authenticated - run: meta-ads auth login\nor: meta-auth login  (shared auth)"
        )


class ConfigError(MetaAdsError):
    """Raised when a configuration file cannot be read, parsed or written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Config file '{path}': {reason}")


class UsageError(MetaAdsError):
    """Raised for invalid command input detected after argument parsing."""

    pass


class ResponseDecodeError(MetaAdsError):
    """Raised when a successful response body is not the JSON shape expected."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Unexpected response from {url}: {reason}")
