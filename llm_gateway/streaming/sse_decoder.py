"""
Incremental decoder for server-sent-event generation streams.

The transport hands the decoder a growing response buffer after every read.
The decoder keeps a cursor into that buffer, carries incomplete lines over to
the next event, extracts text deltas with a provider-supplied function and
pushes each undelivered suffix to the progress sink.

Settlement rule: an error recorded before any delta was decoded is raised;
an error recorded after at least one delta is logged and the partial text is
returned instead.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from llm_gateway.core.error_types import ErrorType
from llm_gateway.core.exceptions import GatewayError, ProviderHTTPError
from llm_gateway.core.transport.http_client import ProgressEvent, TransportResponse
from llm_gateway.core.types import ProgressSink
from llm_gateway.streaming.progress import ProgressDispatcher

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

_LINE_BREAK = re.compile(r"\r?\n")
_NEWLINE_RUN = re.compile(r"\n+")

DeltaExtractor = Callable[[Any], "str | None"]


class DecodePhase(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    COMPLETED_WITH_PARTIAL = "completed_with_partial"
    FAILED = "failed"


@dataclass
class StreamDecodeState:
    """Per-request decode state.

    Attributes:
        processed_length: Cursor into the cumulative response buffer
        partial_line: Incomplete trailing line carried to the next event
        chunks: Decoded text deltas in arrival order
        delivered_length: Characters of ``chunks`` already pushed to the sink
        abort_error: First error recorded for the request
    """

    processed_length: int = 0
    partial_line: str = ""
    chunks: list[str] = field(default_factory=list)
    delivered_length: int = 0
    abort_error: Exception | None = None
    total_length: int = 0
    delivered_chunks: int = field(default=0, repr=False)

    def append(self, delta: str) -> None:
        self.chunks.append(delta)
        self.total_length += len(delta)

    def take_undelivered(self) -> str:
        """Return the undelivered suffix and mark it delivered."""
        suffix = "".join(self.chunks[self.delivered_chunks :])
        self.delivered_chunks = len(self.chunks)
        self.delivered_length = self.total_length
        return suffix

    @property
    def text(self) -> str:
        return "".join(self.chunks)


class SseStreamDecoder:
    """Transport observer that turns an SSE byte stream into text.

    Args:
        extract_delta: Maps one parsed ``data:`` JSON payload to its text delta
            (or None when the event carries no text)
        progress: Optional sink receiving each new text increment
        ignored_payloads: ``data:`` payloads that are sentinels, not JSON
    """

    def __init__(
        self,
        extract_delta: DeltaExtractor,
        progress: ProgressSink | None = None,
        *,
        ignored_payloads: Iterable[str] = (),
        label: str = "stream",
    ) -> None:
        self.extract_delta = extract_delta
        self.dispatcher = ProgressDispatcher(progress)
        self.ignored_payloads = {DONE_SENTINEL, *ignored_payloads}
        self.label = label
        self.state = StreamDecodeState()
        self.phase = DecodePhase.IDLE

    # ==================== TransportObserver ====================

    def on_progress(self, event: ProgressEvent) -> None:
        self.phase = DecodePhase.STREAMING
        if event.status_code >= 400:
            self._record_error(
                ProviderHTTPError.from_response(
                    event.status_code, event.response_text, url=event.url, headers=event.headers
                )
            )
            event.abort()
            return
        self.feed(event.response_text)

    def on_error(self, error: Exception) -> None:
        self._record_error(error)

    def on_timeout(self, error: Exception) -> None:
        self._record_error(error)

    def _record_error(self, error: Exception) -> None:
        if self.state.abort_error is None:
            self.state.abort_error = error
        else:
            logger.debug("%s: ignoring later error %r", self.label, error)

    # ==================== Decoding ====================

    def feed(self, buffer: str) -> None:
        """Process a grown response buffer."""
        state = self.state
        if len(buffer) <= state.processed_length:
            return

        combined = state.partial_line + buffer[state.processed_length :]
        state.processed_length = len(buffer)

        lines = _LINE_BREAK.split(combined)
        # A slice ending on a line break leaves an empty last element
        state.partial_line = lines.pop()

        for line in lines:
            self._decode_line(line)
        self._deliver()

    def _decode_line(self, line: str) -> None:
        line = line.strip()
        if not line.startswith(DATA_PREFIX):
            return
        payload = line[len(DATA_PREFIX) :].strip()
        if not payload or payload in self.ignored_payloads:
            return

        try:
            delta = self.extract_delta(json.loads(payload))
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.debug(
                "%s: skipping malformed stream line: %s",
                self.label,
                e,
                extra={"error_type": ErrorType.DECODE_WARNING.value},
            )
            return

        if isinstance(delta, str) and delta:
            self.state.append(_NEWLINE_RUN.sub("\n", delta))

    def _deliver(self) -> None:
        if not self.dispatcher or self.state.total_length <= self.state.delivered_length:
            return
        self.dispatcher.deliver(self.state.take_undelivered())

    # ==================== Settlement ====================

    async def consume(self, request: Awaitable[TransportResponse]) -> str:
        """Await the transport call this decoder observes, then settle."""
        try:
            await request
        except GatewayError as e:
            self._record_error(e)
        return self.finish()

    def finish(self) -> str:
        """Apply the settlement rule and return the aggregated text."""
        state = self.state
        if state.partial_line:
            # Servers may omit the final line break
            line, state.partial_line = state.partial_line, ""
            self._decode_line(line)
            self._deliver()

        if state.abort_error is not None:
            if not state.chunks:
                self.phase = DecodePhase.FAILED
                raise state.abort_error
            self.phase = DecodePhase.COMPLETED_WITH_PARTIAL
            logger.warning(
                "%s: returning %d chars of partial output after error: %s",
                self.label,
                state.total_length,
                state.abort_error,
            )
            return state.text

        self.phase = DecodePhase.COMPLETED
        return state.text
