"""
Exception hierarchy for the LLM gateway.

All exceptions inherit from GatewayError, allowing callers to catch every
gateway failure with a single except clause.

Example:
    >>> try:
    ...     await provider.generate_summary(text, False, prompt, options)
    ... except GatewayError as e:
    ...     print(f"Summary failed ({e.error_type.value}): {e}")
"""

from __future__ import annotations

import json
from typing import Any

from .error_types import ErrorType, classify_status


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    error_type: ErrorType = ErrorType.UNEXPECTED_ERROR


class ConfigurationError(GatewayError):
    """Raised when an endpoint or credential is missing.

    Requests that would raise this are never sent over the wire.
    """

    error_type = ErrorType.CONFIGURATION


class UnsupportedOperationError(GatewayError):
    """Raised when a provider does not offer an optional operation."""

    error_type = ErrorType.UNSUPPORTED


class StorageError(GatewayError):
    """Raised when the credential store cannot be read or written."""

    error_type = ErrorType.STORAGE


class NetworkError(GatewayError):
    """Transport-level failure (DNS, TLS, connection reset).

    Attributes:
        url: Request URL
    """

    error_type = ErrorType.NETWORK

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class RequestTimeoutError(NetworkError):
    """Raised when a request exceeds its timeout."""

    error_type = ErrorType.TIMEOUT

    def __init__(self, timeout: float, *, url: str = "") -> None:
        self.timeout = timeout
        super().__init__(f"Timeout: request exceeded {timeout * 1000:.0f} ms", url=url)


class TransportAbortedError(NetworkError):
    """Raised by the transport after an observer aborted the request."""

    error_type = ErrorType.ABORTED

    def __init__(self, url: str = "") -> None:
        super().__init__(f"Request to {url} was aborted", url=url)


def parse_error_body(status_code: int, body: str, reason: str = "") -> tuple[str, str]:
    """Extract a provider error code and message from an HTTP error body.

    Understands ``{"error": {...}}``, a bare error object, and Gemini's
    streamed ``[{"error": {...}}]`` array. Falls back to the status line when
    the body is not JSON.

    Returns:
        A ``(code, message)`` tuple.
    """
    code = f"HTTP {status_code}"
    message = reason or "Request failed"

    try:
        parsed: Any = json.loads(body) if body else None
    except ValueError:
        return code, message

    if isinstance(parsed, list) and parsed:
        parsed = parsed[0]
    if not isinstance(parsed, dict):
        return code, message

    err = parsed.get("error") or parsed
    if isinstance(err, str):
        return code, err
    if not isinstance(err, dict):
        return code, message

    for field in ("code", "type", "status"):
        value = err.get(field)
        if value:
            code = str(value)
            break
    msg = err.get("message")
    if isinstance(msg, str) and msg:
        message = msg
    return code, message


class ProviderHTTPError(GatewayError):
    """HTTP request failed with status >= 400.

    Attributes:
        status_code: HTTP status code
        code: Provider error code (or ``HTTP <status>`` when unavailable)
        provider_message: Provider error message
        body: Raw response body
        url: Request URL
        headers: Response headers
    """

    error_type = ErrorType.HTTP_ERROR

    def __init__(
        self,
        status_code: int,
        code: str,
        provider_message: str,
        *,
        body: str = "",
        url: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.provider_message = provider_message
        self.body = body
        self.url = url
        self.headers = headers or {}
        self.error_type = classify_status(status_code)
        super().__init__(f"{code}: {provider_message}")

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: str,
        *,
        url: str = "",
        headers: dict[str, str] | None = None,
        reason: str = "",
    ) -> ProviderHTTPError:
        code, message = parse_error_body(status_code, body, reason)
        return cls(status_code, code, message, body=body, url=url, headers=headers)


class ApiTestError(GatewayError):
    """Connection test failure carrying everything needed to self-diagnose.

    Attributes:
        error_name: Classification (provider error code/type or transport error)
        error_message: Human-readable message
        status_code: HTTP status, None for transport failures
        request_url: Exact URL the request was sent to
        request_body: Serialized request body
        response_headers: Captured response headers
        response_body: Raw response body
    """

    def __init__(
        self,
        message: str,
        *,
        error_name: str,
        error_message: str,
        status_code: int | None,
        request_url: str,
        request_body: str,
        response_headers: dict[str, str] | None = None,
        response_body: str = "",
    ) -> None:
        self.error_name = error_name
        self.error_message = error_message
        self.status_code = status_code
        self.request_url = request_url
        self.request_body = request_body
        self.response_headers = response_headers or {}
        self.response_body = response_body
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_name": self.error_name,
            "error_message": self.error_message,
            "status_code": self.status_code,
            "request_url": self.request_url,
            "request_body": self.request_body,
            "response_headers": dict(self.response_headers),
            "response_body": self.response_body,
        }


__all__ = [
    "GatewayError",
    "ConfigurationError",
    "UnsupportedOperationError",
    "StorageError",
    "NetworkError",
    "RequestTimeoutError",
    "TransportAbortedError",
    "ProviderHTTPError",
    "ApiTestError",
    "parse_error_body",
]
