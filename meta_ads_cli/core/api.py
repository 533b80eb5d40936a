"""Core API functionality for the Meta Graph API."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import hashlib
import hmac
import json
import math

import httpx

from .exceptions import (
    GraphAPIError,
    HTTPStatusError,
    MetaAdsError,
    NotAuthenticatedError,
    PaginationError,
    ResponseDecodeError,
    TransportError,
)
from .utils import logger, mask_params, print_err

# Constants
META_GRAPH_API_VERSION = "v25.0"
META_GRAPH_API_BASE = f"https://graph.facebook.com/{META_GRAPH_API_VERSION}"
USER_AGENT = "meta-ads-cli/1.0"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 100
RATE_LIMIT_THRESHOLD = 75

# Usage headers, in the order they are inspected
USAGE_HEADERS = ("X-Business-Use-Case-Usage", "X-Ad-Account-Usage", "X-App-Usage")
USAGE_COUNTERS = ("call_count", "total_time", "total_cputime", "acc_id_util_pct")


def compute_appsecret_proof(access_token: str, app_secret: Optional[str]) -> str:
    """HMAC-SHA256 of the access token keyed by the app secret, hex-encoded.

    Returns an empty string when no app secret is configured.
    """
    if not app_secret:
        return ""
    return hmac.new(
        app_secret.encode("utf-8"),
        access_token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _usage_entries(parsed: Any) -> Iterable[Dict[str, Any]]:
    # X-App-Usage is a flat object, X-Business-Use-Case-Usage maps ids to lists
    if not isinstance(parsed, dict):
        return
    if any(key in parsed for key in USAGE_COUNTERS):
        yield parsed
        return
    for value in parsed.values():
        if isinstance(value, list):
            for entry in value:
                if isinstance(entry, dict):
                    yield entry


def check_rate_limit(headers: httpx.Headers, threshold: int = RATE_LIMIT_THRESHOLD) -> Optional[int]:
    """Return the highest usage percentage above ``threshold``, or None.

    Parsing is best-effort: a missing or malformed header never raises.
    """
    highest = None
    for name in USAGE_HEADERS:
        raw = headers.get(name)
        if not raw:
            continue
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.debug(f"Ignoring malformed {name} header: {raw[:200]}")
            continue
        for entry in _usage_entries(parsed):
            for counter in USAGE_COUNTERS:
                value = entry.get(counter)
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    continue
                # json.loads accepts Infinity and NaN
                if isinstance(value, float) and not math.isfinite(value):
                    continue
                if value > threshold and (highest is None or value > highest):
                    highest = int(value)
    return highest


def _strip_query(url: str) -> str:
    # Cursor URLs carry the access token in their query string
    return url.split("?", 1)[0]


@dataclass(frozen=True)
class PageRequest:
    """One page fetch of a list query.

    The first page carries the caller's filter params; follow-up pages use the
    server-issued cursor URL verbatim, which already embeds every query param.
    """

    path: str
    params: Dict[str, Any] = field(default_factory=dict)
    is_cursor: bool = False

    @classmethod
    def first(cls, path: str, params: Dict[str, Any]) -> "PageRequest":
        return cls(path=path, params=dict(params))

    @classmethod
    def follow(cls, cursor: str) -> "PageRequest":
        return cls(path=cursor, is_cursor=True)


class MetaClient:
    """Authenticated client for the Meta Graph API.

    Every request carries ``access_token`` and, when an app secret is known,
    ``appsecret_proof``. Errors are classified into ``TransportError``,
    ``GraphAPIError`` and ``HTTPStatusError``.
    """

    def __init__(
        self,
        access_token: str,
        app_secret: Optional[str] = None,
        base_url: str = META_GRAPH_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limit_threshold: int = RATE_LIMIT_THRESHOLD,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        warn: Callable[[str], None] = print_err,
    ):
        if not access_token:
            raise NotAuthenticatedError()
        self.access_token = access_token
        self.app_secret = app_secret or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limit_threshold = rate_limit_threshold
        self._transport = transport
        self._warn = warn

    def resolve_url(self, path: str) -> str:
        """Absolute URLs (pagination cursors) are used verbatim."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def auth_params(self) -> Dict[str, str]:
        params = {"access_token": self.access_token}
        proof = compute_appsecret_proof(self.access_token, self.app_secret)
        if proof:
            params["appsecret_proof"] = proof
        return params

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        url = self.resolve_url(path)
        logger.debug(f"API Request: {method} {_strip_query(url)}")
        logger.debug(f"Request params: {mask_params(params if method == 'GET' else data)}")

        try:
            async with self._http_client() as client:
                if method == "GET":
                    response = await client.get(url, params=params)
                elif method == "POST":
                    response = await client.post(url, data=data)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Request Error: {type(e).__name__}: {e}")
            raise TransportError(_strip_query(url), str(e) or type(e).__name__) from e

        body = response.content
        logger.debug(f"API Response status: {response.status_code}")

        usage = check_rate_limit(response.headers, self.rate_limit_threshold)
        if usage is not None:
            logger.warning(f"Rate limit usage at {usage}%")
            self._warn(f"Rate limit: {usage}% used - slow down to avoid HTTP 613")

        # Meta returns 200 for some errors, so the envelope wins over the status
        envelope = _decode_error_envelope(body)
        if envelope is not None:
            error = GraphAPIError.from_envelope(envelope)
            logger.error(f"Graph API Error: {error}")
            raise error

        if response.status_code >= 400:
            logger.error(f"HTTP Error: {response.status_code} - {response.text[:500]}")
            raise HTTPStatusError(response.status_code, response.text)

        return body

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        """GET with auth added to the query string; returns the raw body."""
        query = dict(params or {})
        query.update(self.auth_params())
        return await self._request("GET", path, params=query)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> bytes:
        """POST a form body with auth merged into it; returns the raw body."""
        form = {}
        for key, value in (data or {}).items():
            # Graph API expects lists and objects as JSON strings
            if isinstance(value, (list, dict)):
                value = json.dumps(value)
            form[key] = value
        form.update(self.auth_params())
        return await self._request("POST", path, data=form)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = await self.get(path, params)
        return _decode_object(self.resolve_url(path), body)

    async def post_json(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = await self.post(path, data)
        return _decode_object(self.resolve_url(path), body)

    async def _fetch_page(self, request: PageRequest) -> Dict[str, Any]:
        page = await self.get_json(request.path, request.params)
        data = page.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ResponseDecodeError(_strip_query(self.resolve_url(request.path)), "'data' is not a list")
        paging = page.get("paging") or {}
        next_url = paging.get("next") if isinstance(paging, dict) else None
        return {"data": data, "next": next_url or None}

    async def get_all(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every record of a list endpoint, following ``paging.next``.

        Args:
            path: Endpoint path, e.g. ``act_123/campaigns``
            params: Fields and filters; never mutated
            limit: Hard cap. When set, exactly one page of at most ``limit``
                records is fetched and the cursor is never followed.

        Returns:
            Records of all pages, in server order. Any failure raises and no
            partial list is returned.
        """
        query = dict(params or {})

        if limit and limit > 0:
            query["limit"] = limit
            page = await self._fetch_page(PageRequest.first(path, query))
            return page["data"]

        if not query.get("limit"):
            query["limit"] = DEFAULT_PAGE_SIZE

        records: List[Dict[str, Any]] = []
        followed = set()
        request = PageRequest.first(path, query)
        page_number = 1

        while True:
            try:
                page = await self._fetch_page(request)
            except MetaAdsError as e:
                if not request.is_cursor:
                    raise
                raise PaginationError(page_number, _strip_query(request.path), str(e)) from e

            records.extend(page["data"])
            logger.debug(f"Page {page_number}: {len(page['data'])} records")

            next_url = page["next"]
            if not next_url:
                break
            if next_url in followed:
                raise PaginationError(
                    page_number + 1,
                    _strip_query(next_url),
                    "server returned a cursor that was already followed",
                )
            followed.add(next_url)
            request = PageRequest.follow(next_url)
            page_number += 1

        return records


def _decode_error_envelope(body: bytes) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        return parsed["error"]
    return None


def _decode_object(url: str, body: bytes) -> Dict[str, Any]:
    try:
        parsed = json.loads(body)
    except ValueError as e:
        raise ResponseDecodeError(_strip_query(url), f"invalid JSON ({e})") from e
    if not isinstance(parsed, dict):
        raise ResponseDecodeError(_strip_query(url), "expected a JSON object")
    return parsed
