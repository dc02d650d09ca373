from llm_gateway.core.transport.http_client import (
    HttpTransport,
    HttpxTransport,
    ProgressEvent,
    TransportObserver,
    TransportResponse,
)

__all__ = [
    "HttpTransport",
    "HttpxTransport",
    "ProgressEvent",
    "TransportObserver",
    "TransportResponse",
]
