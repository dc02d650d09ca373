"""
HTTP transport abstraction for the gateway.

Provides a testable interface for POST requests with an optional
progress observer, using httpx as the default implementation.
"""

from __future__ import annotations

import abc
import json
import logging
import typing
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from ..exceptions import (
    NetworkError,
    ProviderHTTPError,
    RequestTimeoutError,
    TransportAbortedError,
)

_logger = logging.getLogger(__name__)

RESPONSE_TYPES = ("text", "json")


# =============================================================================
# Response and progress events
# =============================================================================


@dataclass
class TransportResponse:
    """Settled response of a POST request."""

    status_code: int
    headers: dict[str, str]
    text: str
    url: str
    data: typing.Any = field(default=None, repr=False)

    def json(self) -> typing.Any:
        if self.data is None:
            self.data = json.loads(self.text)
        return self.data


class ProgressEvent:
    """Snapshot of an in-flight response.

    Attributes:
        response_text: Everything received so far (a growing buffer, not a delta)
        status_code: HTTP status of the in-flight response
        url: Request URL
        headers: Response headers
    """

    def __init__(
        self,
        response_text: str,
        status_code: int,
        abort: Callable[[], None],
        *,
        url: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.response_text = response_text
        self.status_code = status_code
        self.url = url
        self.headers = headers or {}
        self._abort = abort

    def abort(self) -> None:
        """Ask the transport to stop reading and close the connection."""
        self._abort()


class TransportObserver(typing.Protocol):
    """Low-level observer of a streaming request."""

    def on_progress(self, event: ProgressEvent) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_timeout(self, error: Exception) -> None: ...


# =============================================================================
# Abstract Transport
# =============================================================================


class HttpTransport(abc.ABC):
    """Abstract HTTP transport.

    Implementations must surface network errors, timeouts and non-2xx statuses
    distinctly: NetworkError, RequestTimeoutError and ProviderHTTPError.
    """

    @abc.abstractmethod
    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        body: typing.Any,
        response_type: str = "text",
        timeout: float = 300.0,
        observer: TransportObserver | None = None,
    ) -> TransportResponse:
        """Make an HTTP POST request.

        Args:
            url: Request URL
            headers: Request headers
            body: Request body; dicts and lists are sent as JSON
            response_type: "text" or "json" (the latter parses the body eagerly)
            timeout: Timeout in seconds
            observer: Optional observer; when given the response is streamed
                and the observer sees the growing buffer

        Returns:
            TransportResponse

        Raises:
            ProviderHTTPError: Status >= 400
            RequestTimeoutError: The timeout was exceeded
            NetworkError: Any other transport failure
        """

    async def aclose(self) -> None:
        """Release pooled connections."""


def encode_body(body: typing.Any) -> bytes:
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


# =============================================================================
# httpx Implementation
# =============================================================================


class HttpxTransport(HttpTransport):
    """Default transport using httpx.AsyncClient.

    Example:
        >>> transport = HttpxTransport()
        >>> response = await transport.post(
        ...     "https://api.example.com/v1/chat/completions",
        ...     headers={"Authorization": "Bearer sk-..."},
        ...     body={"model": "m", "messages": []},
        ... )
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the transport.

        Args:
            client: Shared client (one is created lazily if None)
        """
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        body: typing.Any,
        response_type: str = "text",
        timeout: float = 300.0,
        observer: TransportObserver | None = None,
    ) -> TransportResponse:
        if response_type not in RESPONSE_TYPES:
            raise ValueError(f"Unsupported response type: {response_type}")

        content = encode_body(body)
        request_headers = {"Content-Type": "application/json", **headers}
        _logger.debug(
            "HTTP POST %s (timeout=%.0fs, body=%d bytes, streaming=%s)",
            url,
            timeout,
            len(content),
            observer is not None,
        )

        try:
            if observer is None:
                response = await self._post_buffered(url, request_headers, content, timeout)
            else:
                response = await self._post_streaming(
                    url, request_headers, content, timeout, observer
                )

        except httpx.TimeoutException as e:
            error = RequestTimeoutError(timeout, url=url)
            if observer is not None:
                observer.on_timeout(error)
            raise error from e

        except httpx.RequestError as e:
            # TransportError plus DecodingError and redirect/protocol failures
            reason = str(e) or type(e).__name__
            error = NetworkError(f"Network error for {url}: {reason}", url=url)
            if observer is not None:
                observer.on_error(error)
            raise error from e

        _logger.debug(
            "HTTP %s from %s (body=%d chars)", response.status_code, url, len(response.text)
        )

        if response_type == "json":
            try:
                response.json()
            except ValueError as e:
                raise NetworkError(f"Invalid JSON response from {url}", url=url) from e
        return response

    async def _post_buffered(
        self, url: str, headers: dict[str, str], content: bytes, timeout: float
    ) -> TransportResponse:
        response = await self._get_client().post(
            url,
            content=content,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )
        response_headers = dict(response.headers)
        if response.status_code >= 400:
            raise ProviderHTTPError.from_response(
                response.status_code,
                response.text,
                url=url,
                headers=response_headers,
                reason=response.reason_phrase,
            )
        return TransportResponse(response.status_code, response_headers, response.text, url)

    async def _post_streaming(
        self,
        url: str,
        headers: dict[str, str],
        content: bytes,
        timeout: float,
        observer: TransportObserver,
    ) -> TransportResponse:
        aborted = False

        def abort() -> None:
            nonlocal aborted
            aborted = True

        async with self._get_client().stream(
            "POST",
            url,
            content=content,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        ) as response:
            status = response.status_code
            response_headers = dict(response.headers)

            if status >= 400:
                await response.aread()
                observer.on_progress(
                    ProgressEvent(response.text, status, abort, url=url, headers=response_headers)
                )
                if aborted:
                    raise TransportAbortedError(url)
                raise ProviderHTTPError.from_response(
                    status,
                    response.text,
                    url=url,
                    headers=response_headers,
                    reason=response.reason_phrase,
                )

            buffer = ""
            async for piece in response.aiter_text():
                if not piece:
                    continue
                buffer += piece
                observer.on_progress(
                    ProgressEvent(buffer, status, abort, url=url, headers=response_headers)
                )
                if aborted:
                    _logger.debug("Observer aborted streaming request to %s", url)
                    raise TransportAbortedError(url)

        return TransportResponse(status, response_headers, buffer, url)


__all__ = [
    "HttpTransport",
    "HttpxTransport",
    "ProgressEvent",
    "TransportObserver",
    "TransportResponse",
    "encode_body",
]
