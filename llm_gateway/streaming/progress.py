"""Fire-and-forget delivery of text increments to a progress sink."""

from __future__ import annotations

import asyncio
import inspect
import logging

from llm_gateway.core.types import ProgressSink

logger = logging.getLogger(__name__)


class ProgressDispatcher:
    """Delivers chunks to a sink without letting the sink affect the caller.

    Plain callables run inline; coroutine sinks are scheduled as tasks and
    never awaited here. Tasks start in delivery order. Any failure is logged
    and dropped.
    """

    def __init__(self, sink: ProgressSink | None) -> None:
        self.sink = sink
        self._pending: set[asyncio.Future] = set()

    def __bool__(self) -> bool:
        return self.sink is not None

    def deliver(self, chunk: str) -> None:
        if self.sink is None:
            return
        try:
            result = self.sink(chunk)
        except Exception:
            logger.warning("Progress sink raised; continuing stream", exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Progress sink failed: %s", exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for scheduled sink calls to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
