"""Error type enumeration for the LLM gateway.

Provides type-safe error categorization for exceptions and log records.
"""

from enum import Enum


class ErrorType(str, Enum):
    """Error type categories.

    These error types are used throughout the codebase for:
    - GatewayError.error_type field
    - ApiTestError diagnostics (error classification)
    - The ``error_type`` extra on decoder log records
    """

    # Never sent over the wire
    CONFIGURATION = "configuration"  # Missing endpoint or credential
    UNSUPPORTED = "unsupported"  # Operation not offered by the provider

    # Transport errors
    NETWORK = "network"  # DNS, TLS, connection reset
    TIMEOUT = "timeout"  # Request exceeded its timeout
    ABORTED = "aborted"  # Request aborted by the stream decoder

    # HTTP/API errors
    HTTP_ERROR = "http_error"  # Status >= 400
    AUTH_ERROR = "auth_error"  # 401/403
    RATE_LIMIT = "rate_limit"  # 429

    # Streaming
    DECODE_WARNING = "decode_warning"  # Malformed stream line (logged only)

    # Credential storage
    STORAGE = "storage"

    # Catch-all
    UNEXPECTED_ERROR = "unexpected_error"


def classify_status(status_code: int) -> ErrorType:
    """Map an HTTP status code to the closest error type."""
    if status_code in (401, 403):
        return ErrorType.AUTH_ERROR
    if status_code == 429:
        return ErrorType.RATE_LIMIT
    return ErrorType.HTTP_ERROR
