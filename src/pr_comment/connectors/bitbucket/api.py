"""Bitbucket Cloud REST API 2.0 request layer.

Provides the single-request executor (Basic Auth, JSON decoding, typed error
translation) and a cursor-following paginator built on top of it. All network
access goes through an injected Transport so the layer can be exercised
without a real server.

Reference: https://developer.atlassian.com/cloud/bitbucket/rest/intro/
"""

import base64
import json
import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypedDict, TypeVar

import httpx

logger = logging.getLogger("pr_comment.bitbucket.api")

API_BASE_URL = "https://api.bitbucket.org/2.0"

INVALID_JSON_MESSAGE = "Response did not contain valid JSON data."

T = TypeVar("T")


@dataclass(frozen=True)
class Credential:
    """Username/app password pair used for HTTP Basic Auth."""

    username: str
    password: str = field(repr=False)


class _PaginatedResponseBase(TypedDict):
    values: list[Any]
    size: int
    page: int
    pagelen: int


class PaginatedResponse(_PaginatedResponseBase, total=False):
    """One page of a Bitbucket listing endpoint.

    ``next`` and ``prev`` are absolute URLs, present only when a neighbouring
    page exists.
    """

    next: str
    prev: str


class BitbucketApiError(Exception):
    """Raised when a Bitbucket API response is invalid JSON or an HTTP failure.

    Attributes:
        message: Server error message (``error.message``) or the fixed
            invalid-JSON message
        status: HTTP status code of the response
        url: Final URL of the response
        body: Raw response body text
        detail: Remaining fields of the ``error`` envelope
    """

    def __init__(
        self,
        message: str | None,
        status: int,
        url: str,
        body: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status = status
        self.url = url
        self.body = body
        self.detail = detail if detail is not None else {}
        super().__init__(message)


# --- Transport ---


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: str | None = None


@dataclass(frozen=True)
class TransportResponse:
    status: int
    text: str
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Sends one HTTP request and returns its status, body text and final URL."""

    async def send(self, request: TransportRequest) -> TransportResponse: ...


class HttpxTransport:
    """Transport backed by httpx.AsyncClient.

    Without an injected client each request opens and closes its own
    short-lived client, using httpx's default timeouts.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def send(self, request: TransportRequest) -> TransportResponse:
        if self._client is not None:
            return await self._send(self._client, request)
        async with httpx.AsyncClient() as client:
            return await self._send(client, request)

    @staticmethod
    async def _send(
        client: httpx.AsyncClient, request: TransportRequest
    ) -> TransportResponse:
        response = await client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body,
        )
        return TransportResponse(
            status=response.status_code,
            text=response.text,
            url=str(response.url),
        )


# --- Request executor ---


def get_auth_header_value(credential: Credential) -> str:
    """Build the HTTP Basic Auth header value: ``Basic base64(username:password)``."""
    raw = f"{credential.username}:{credential.password}"
    return f"Basic {base64.b64encode(raw.encode()).decode()}"


def resolve_url(path_or_url: str | httpx.URL) -> str:
    """Resolve a relative API path against API_BASE_URL; absolute URLs pass through."""
    if isinstance(path_or_url, httpx.URL):
        return str(path_or_url)
    return f"{API_BASE_URL}/{path_or_url}"


def build_headers(
    credential: Credential,
    body: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Default headers with caller-supplied headers merged on top."""
    merged = {
        "Accept": "application/json",
        "Authorization": get_auth_header_value(credential),
    }
    if body:
        merged["Content-Type"] = "application/json"
    if headers:
        merged.update(headers)
    return merged


async def make_request(
    credential: Credential,
    path_or_url: str | httpx.URL,
    *,
    method: str = "GET",
    body: str | None = None,
    headers: Mapping[str, str] | None = None,
    transport: Transport | None = None,
) -> Any:
    """Perform one authenticated request and decode the JSON response.

    Args:
        credential: Basic Auth credential
        path_or_url: Path relative to API_BASE_URL (str) or an absolute
            httpx.URL used verbatim
        method: HTTP method
        body: Request body, typically JSON-encoded
        headers: Header overrides, merged over the defaults
        transport: Transport to send through (default: HttpxTransport)

    Returns:
        Parsed JSON payload of a successful response, unvalidated

    Raises:
        BitbucketApiError: Body is not valid JSON, or the status is a failure
        httpx.HTTPError: Transport-level failure, not translated
    """
    transport = transport or HttpxTransport()
    request = TransportRequest(
        method=method,
        url=resolve_url(path_or_url),
        headers=build_headers(credential, body, headers),
        body=body,
    )

    logger.debug(
        "bitbucket_request", extra={"method": request.method, "url": request.url}
    )
    response = await transport.send(request)
    logger.debug(
        "bitbucket_response",
        extra={"status_code": response.status, "url": response.url},
    )

    return parse_response(response)


def parse_response(response: TransportResponse) -> Any:
    """Decode a response body, translating failures into BitbucketApiError."""
    try:
        data = json.loads(response.text)
    except ValueError as e:
        raise BitbucketApiError(
            INVALID_JSON_MESSAGE, response.status, response.url, response.text
        ) from e

    if response.ok:
        return data

    # Bodies outside the {"error": {"message": ...}} shape give message=None
    error = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error, dict):
        error = {}
    detail = {k: v for k, v in error.items() if k != "message"}

    raise BitbucketApiError(
        error.get("message"), response.status, response.url, response.text, detail
    )


# --- Pagination ---


class PaginatedRequest(Generic[T]):
    """Lazy, forward-only traversal of a paginated Bitbucket listing.

    Each page is fetched only when its items are needed, so a consumer that
    stops early triggers no further requests. A failed fetch ends the
    traversal; the error is raised to whoever asked for the next item.

    Example:
        >>> async for comment in make_paginated_request(credential, path):
        ...     print(comment["id"])
    """

    def __init__(
        self,
        credential: Credential,
        path: str,
        *,
        method: str = "GET",
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._credential = credential
        self._method = method
        self._body = body
        self._headers = headers
        self._transport = transport
        self._next: str | httpx.URL | None = path
        self._buffer: deque[T] = deque()
        self.pages_fetched = 0

    @property
    def exhausted(self) -> bool:
        return self._next is None

    async def fetch_next_page(self) -> list[T] | None:
        """Fetch the next page and return its items, or None when exhausted."""
        if self._next is None:
            return None

        current, self._next = self._next, None
        page: PaginatedResponse = await make_request(
            self._credential,
            current,
            method=self._method,
            body=self._body,
            headers=self._headers,
            transport=self._transport,
        )
        self.pages_fetched += 1

        next_url = page.get("next")
        self._next = httpx.URL(next_url) if next_url else None

        values = page["values"]
        logger.debug(
            "bitbucket_page_fetched",
            extra={
                "page_number": self.pages_fetched,
                "page_items": len(values),
                "has_next": self._next is not None,
            },
        )
        return values

    def __aiter__(self) -> "PaginatedRequest[T]":
        return self

    async def __anext__(self) -> T:
        while not self._buffer:
            values = await self.fetch_next_page()
            if values is None:
                raise StopAsyncIteration
            self._buffer.extend(values)
        return self._buffer.popleft()


def make_paginated_request(
    credential: Credential,
    path: str,
    *,
    method: str = "GET",
    body: str | None = None,
    headers: Mapping[str, str] | None = None,
    transport: Transport | None = None,
) -> PaginatedRequest[Any]:
    """Create a lazy traversal over every item of a paginated endpoint.

    The request overrides are applied to every page fetch.
    """
    return PaginatedRequest(
        credential,
        path,
        method=method,
        body=body,
        headers=headers,
        transport=transport,
    )
