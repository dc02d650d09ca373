"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from llm_gateway.client import LLMGateway

T = TypeVar("T")


def build_gateway() -> LLMGateway:
    """Gateway built from the environment; tests replace this."""
    return LLMGateway.from_config()


def run_with_gateway(operation: Callable[[LLMGateway], Awaitable[T]]) -> T:
    """Run ``operation`` on a fresh gateway and close its transport afterwards."""

    async def _main() -> T:
        gateway = build_gateway()
        try:
            return await operation(gateway)
        finally:
            await gateway.aclose()

    return asyncio.run(_main())
