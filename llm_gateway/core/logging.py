import logging
import re
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

NOISY_HTTP_LOGGERS = (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
)

# Bearer tokens and the common provider key shapes (sk-..., sk-ant-..., AIza...)
SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]{8,}"),
    re.compile(r"\b(sk-(?:ant-|or-)?)[A-Za-z0-9_\-]{12,}"),
    re.compile(r"\b(AIza)[A-Za-z0-9_\-]{20,}"),
)


def parse_log_level(raw: str) -> str:
    """Extract the level name, tolerating trailing comments; invalid → INFO."""
    parts = (raw or "").split()
    level = parts[0].upper() if parts else "INFO"
    return level if level in VALID_LEVELS else "INFO"


def redact_secrets(text: str) -> str:
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(lambda m: f"{m.group(1)}***", text)
    return text


def set_noisy_http_logger_levels(current_log_level: str) -> None:
    """Ensure HTTP client noise only surfaces at DEBUG level."""

    noisy_level = logging.DEBUG if current_log_level == "DEBUG" else logging.WARNING
    for logger_name in NOISY_HTTP_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


@contextmanager
def request_context(request_id: str) -> Generator[None, None, None]:
    """Tag every record emitted inside the block with a correlation id.

    The id lives in a ContextVar, so concurrent requests keep their own.
    """
    token = _correlation_id.set(request_id)
    try:
        yield
    finally:
        _correlation_id.reset(token)


def current_request_id() -> str | None:
    return _correlation_id.get()


class CorrelationIdFilter(logging.Filter):
    """Copy the active correlation id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = _correlation_id.get()
        if request_id and not getattr(record, "correlation_id", None):
            record.correlation_id = request_id
        return True


class GatewayFormatter(logging.Formatter):
    """Prefixes the correlation id and masks anything that looks like an API key."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            formatted = f"[{correlation_id[:8]}] {formatted}"
        return redact_secrets(formatted)


class HttpRequestLogDowngradeFilter(logging.Filter):
    """Downgrade noisy third-party HTTP logs to DEBUG."""

    def __init__(self, *prefixes: str) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno == logging.INFO:
            for prefix in self.prefixes:
                if record.name.startswith(prefix):
                    record.levelno = logging.DEBUG
                    record.levelname = logging.getLevelName(logging.DEBUG)
                    break
        return True


def configure_logging(log_level: str = "INFO") -> logging.Handler:
    """Install the gateway handler on the root logger.

    Returns the installed handler so callers (and tests) can inspect it.
    """
    level = parse_log_level(log_level)

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.addFilter(HttpRequestLogDowngradeFilter(*NOISY_HTTP_LOGGERS))
    handler.setFormatter(
        GatewayFormatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s", datefmt="%H:%M:%S")
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level))

    set_noisy_http_logger_levels(level)
    return handler
