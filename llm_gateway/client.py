"""
Gateway facade: provider dispatch with API key failover.

LLMGateway composes the configuration, the provider registry, the key ledger
and the HTTP transport. Every operation picks the current key, calls the
provider and reports the outcome back to the ledger. Transient failures
(HTTP errors, network errors, timeouts) rotate to the next healthy key and
retry, bounded by the ledger's max switch count.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

from llm_gateway.core.config import Config
from llm_gateway.core.config.schema import INHERITED_CREDENTIALS
from llm_gateway.core.credentials import (
    ApiKeyLedger,
    CredentialStore,
    EnvCredentialStore,
    JsonFileCredentialStore,
    RotationStateStore,
    mask_key,
)
from llm_gateway.core.exceptions import ConfigurationError, NetworkError, ProviderHTTPError
from llm_gateway.core.logging import request_context
from llm_gateway.core.provider import ProviderRegistry
from llm_gateway.core.transport import HttpTransport, HttpxTransport
from llm_gateway.core.types import (
    ConversationMessage,
    DocumentFile,
    ProgressSink,
    ProviderId,
    RequestOptions,
)
from llm_gateway.providers import BaseProvider, default_providers

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILOVER_ERRORS = (ProviderHTTPError, NetworkError)
FALLBACK_PROVIDER = ProviderId.OPENAI.value


def build_credential_store(config: Config) -> CredentialStore:
    """JSON file store when LLM_CREDENTIALS_FILE is set, environment otherwise."""
    if config.credentials_file:
        return JsonFileCredentialStore(config.credentials_file)
    return EnvCredentialStore()


class LLMGateway:
    """Entry point for summaries, chats and connection tests.

    Example:
        >>> gateway = LLMGateway.from_config()
        >>> text = await gateway.generate_summary(pdf_b64, True, "Summarize", progress=print)
    """

    def __init__(
        self,
        *,
        config: Config,
        registry: ProviderRegistry,
        ledger: ApiKeyLedger,
        transport: HttpTransport,
    ) -> None:
        self.config = config
        self.registry = registry
        self.ledger = ledger
        self.transport = transport

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        *,
        transport: HttpTransport | None = None,
        store: CredentialStore | None = None,
        states: RotationStateStore | None = None,
    ) -> LLMGateway:
        """Build a gateway with the default adapters and stores."""
        config = config or Config()
        transport = transport or HttpxTransport()
        ledger = ApiKeyLedger(
            store or build_credential_store(config),
            states or RotationStateStore(),
            cooldown_ms=config.failed_key_cooldown_ms,
            max_switch_count=config.max_api_switch_count,
        )
        registry = ProviderRegistry(default_providers(transport))
        return cls(config=config, registry=registry, ledger=ledger, transport=transport)

    async def aclose(self) -> None:
        await self.transport.aclose()

    # ==================== Resolution ====================

    def resolve_provider(self, provider_id: str | None = None) -> BaseProvider:
        """Adapter for ``provider_id`` (configured provider by default).

        Unknown ids fall back to OpenAI.

        Raises:
            ConfigurationError: Neither the id nor the fallback is registered
        """
        requested = (provider_id or self.config.provider).strip().lower()
        provider = self.registry.get(requested)
        if provider is not None:
            return provider

        fallback = self.registry.get(FALLBACK_PROVIDER)
        if fallback is None:
            registered = ", ".join(self.registry.list()) or "none"
            raise ConfigurationError(
                f"Unknown provider '{requested}' (registered: {registered})"
            )
        logger.warning("Unknown provider '%s', falling back to %s", requested, FALLBACK_PROVIDER)
        return fallback

    def build_options(self, provider_id: str, **overrides: Any) -> RequestOptions:
        """Request options from configuration plus the ledger's current key.

        Overrides set to None are ignored.
        """
        options = RequestOptions(
            api_url=self.config.provider_api_url(provider_id),
            api_key=self._current_key(provider_id),
            model=self.config.provider_model(provider_id),
            stream=self.config.stream,
            timeout_ms=self.config.request_timeout_ms,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            max_tokens=self.config.max_tokens,
        )
        explicit = {name: value for name, value in overrides.items() if value is not None}
        return replace(options, **explicit) if explicit else options

    def _current_key(self, provider_id: str) -> str:
        key = self.ledger.get_current_key(provider_id)
        if key:
            return key
        for borrower, source in INHERITED_CREDENTIALS.items():
            if borrower.value == provider_id:
                return self.ledger.get_current_key(source.value)
        return ""

    # ==================== Failover ====================

    async def _call_with_failover(
        self,
        provider: BaseProvider,
        operation: Callable[[RequestOptions], Awaitable[T]],
        overrides: dict[str, Any],
    ) -> T:
        provider_key = provider.provider_id.value
        max_switches = self.ledger.get_max_switch_count()
        switches = 0

        while True:
            options = self.build_options(provider_key, **overrides)
            try:
                result = await operation(options)
            except FAILOVER_ERRORS as e:
                rotated = self.ledger.rotate_to_next_key(provider_key)
                if not rotated or switches >= max_switches:
                    logger.error(
                        "%s request failed after %d key switch(es): %s",
                        provider.display_name,
                        switches,
                        e,
                    )
                    raise
                switches += 1
                logger.warning(
                    "%s request failed with key %s (%s); retrying with next key (%d/%d)",
                    provider.display_name,
                    mask_key(options.api_key),
                    e,
                    switches,
                    max_switches,
                )
                continue

            self.ledger.advance_to_next_key(provider_key)
            return result

    async def _run(
        self,
        name: str,
        provider_id: str | None,
        operation: Callable[[BaseProvider, RequestOptions], Awaitable[T]],
        overrides: dict[str, Any],
    ) -> T:
        with request_context(uuid.uuid4().hex):
            provider = self.resolve_provider(provider_id)
            logger.info("%s via %s", name, provider.display_name)
            return await self._call_with_failover(
                provider, lambda options: operation(provider, options), overrides
            )

    # ==================== Operations ====================

    async def generate_summary(
        self,
        content: str,
        is_multimodal: bool,
        prompt: str,
        *,
        provider_id: str | None = None,
        progress: ProgressSink | None = None,
        **overrides: Any,
    ) -> str:
        return await self._run(
            "Summary",
            provider_id,
            lambda p, o: p.generate_summary(content, is_multimodal, prompt, o, progress),
            overrides,
        )

    async def chat(
        self,
        content: str,
        is_multimodal: bool,
        conversation: list[ConversationMessage],
        *,
        provider_id: str | None = None,
        progress: ProgressSink | None = None,
        **overrides: Any,
    ) -> str:
        return await self._run(
            "Chat",
            provider_id,
            lambda p, o: p.chat(content, is_multimodal, conversation, o, progress),
            overrides,
        )

    async def generate_multi_file_summary(
        self,
        files: list[DocumentFile],
        prompt: str,
        *,
        provider_id: str | None = None,
        progress: ProgressSink | None = None,
        **overrides: Any,
    ) -> str:
        return await self._run(
            "Multi-file summary",
            provider_id,
            lambda p, o: p.generate_multi_file_summary(files, prompt, o, progress),
            overrides,
        )

    async def test_connection(self, *, provider_id: str | None = None, **overrides: Any) -> str:
        return await self._run(
            "Connection test", provider_id, lambda p, o: p.test_connection(o), overrides
        )
