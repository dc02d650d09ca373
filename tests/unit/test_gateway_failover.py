"""
Tests for LLMGateway dispatch and API key failover.

Runs the real adapters against the scripted transport, so every test sees
exactly which key each attempt used.
"""

import logging

import pytest

from llm_gateway.client import LLMGateway
from llm_gateway.core.config import Config
from llm_gateway.core.credentials import (
    ApiKeyLedger,
    InMemoryCredentialStore,
    RotationStateStore,
)
from llm_gateway.core.exceptions import (
    ApiTestError,
    ConfigurationError,
    NetworkError,
    ProviderHTTPError,
    UnsupportedOperationError,
)
from llm_gateway.core.provider import ProviderRegistry
from llm_gateway.core.types import ConversationMessage, DocumentFile
from tests.fixtures.mock_http import create_openai_error

COMPAT = "openai-compat"


def completion(text):
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


def rate_limited():
    return create_openai_error("rate_limit_error", "Rate limit reached", "rate_limit")


def used_keys(transport):
    return [r.headers["Authorization"].removeprefix("Bearer ") for r in transport.requests]


@pytest.fixture
def compat_store():
    return InMemoryCredentialStore(
        {
            "OPENAI_COMPAT_API_KEY": "key-a",
            "OPENAI_COMPAT_API_KEYS_FALLBACK": ["key-b", "key-c"],
        }
    )


@pytest.fixture
def gateway(fake_transport, compat_store):
    return LLMGateway.from_config(Config(), transport=fake_transport, store=compat_store)


@pytest.mark.unit
@pytest.mark.asyncio
class TestFailover:
    async def test_success_advances_to_next_key(self, gateway, fake_transport):
        fake_transport.queue_json(completion("one")).queue_json(completion("two"))

        first = await gateway.generate_summary("text", False, "p", provider_id=COMPAT)
        second = await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert (first, second) == ("one", "two")
        assert used_keys(fake_transport) == ["key-a", "key-b"]
        assert gateway.ledger.get_current_key(COMPAT) == "key-c"

    async def test_http_error_rotates_and_retries(self, gateway, fake_transport):
        fake_transport.queue_json(rate_limited(), status_code=429)
        fake_transport.queue_json(completion("recovered"))

        result = await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert result == "recovered"
        assert used_keys(fake_transport) == ["key-a", "key-b"]
        state = gateway.ledger.rotation_state(COMPAT)
        assert "key-a" in state.failed_keys
        # Success on key-b moved the index on to key-c
        assert gateway.ledger.get_current_key(COMPAT) == "key-c"

    async def test_network_error_rotates_and_retries(self, gateway, fake_transport):
        fake_transport.queue_error(NetworkError("Network error for url: refused"))
        fake_transport.queue_json(completion("ok"))

        result = await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert result == "ok"
        assert used_keys(fake_transport) == ["key-a", "key-b"]

    async def test_gives_up_when_every_key_failed(self, gateway, fake_transport):
        for _ in range(3):
            fake_transport.queue_json(rate_limited(), status_code=429)

        with pytest.raises(ProviderHTTPError) as exc_info:
            await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert exc_info.value.status_code == 429
        assert used_keys(fake_transport) == ["key-a", "key-b", "key-c"]

    async def test_switches_bounded_by_max_switch_count(self, monkeypatch, fake_transport):
        monkeypatch.setenv("MAX_API_SWITCH_COUNT", "2")
        store = InMemoryCredentialStore(
            {
                "OPENAI_COMPAT_API_KEY": "k1",
                "OPENAI_COMPAT_API_KEYS_FALLBACK": ["k2", "k3", "k4", "k5"],
            }
        )
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=store)
        for _ in range(3):
            fake_transport.queue_json(rate_limited(), status_code=429)

        with pytest.raises(ProviderHTTPError):
            await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert used_keys(fake_transport) == ["k1", "k2", "k3"]
        # The last failure still marked k3 and moved the index
        assert gateway.ledger.get_current_key(COMPAT) == "k4"

    async def test_single_key_is_not_retried(self, fake_transport):
        store = InMemoryCredentialStore({"OPENAI_COMPAT_API_KEY": "only"})
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=store)
        fake_transport.queue_json(rate_limited(), status_code=429)

        with pytest.raises(ProviderHTTPError):
            await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert len(fake_transport.requests) == 1

    async def test_streamed_error_before_output_rotates(self, gateway, fake_transport):
        fake_transport.queue_stream(
            ['{"error":{"message":"Server exploded","type":"server_error"}}'], status_code=500
        )
        fake_transport.queue_stream(['data: {"choices":[{"delta":{"content":"fine"}}]}\n\n'])
        chunks = []

        result = await gateway.generate_summary(
            "text", False, "p", provider_id=COMPAT, progress=chunks.append
        )

        assert result == "fine"
        assert chunks == ["fine"]
        assert used_keys(fake_transport) == ["key-a", "key-b"]
        assert all(r.streamed for r in fake_transport.requests)

    async def test_partial_stream_is_kept_without_rotation(self, gateway, fake_transport):
        fake_transport.queue_stream(
            ['data: {"choices":[{"delta":{"content":"half"}}]}\n\n'],
            error=NetworkError("Network error for url: reset"),
        )
        chunks = []

        result = await gateway.generate_summary(
            "text", False, "p", provider_id=COMPAT, progress=chunks.append
        )

        assert result == "half"
        assert len(fake_transport.requests) == 1
        assert gateway.ledger.rotation_state(COMPAT).failed_keys == {}

    async def test_missing_key_is_not_retried(self, fake_transport):
        gateway = LLMGateway.from_config(
            Config(), transport=fake_transport, store=InMemoryCredentialStore()
        )

        with pytest.raises(ConfigurationError, match="API key is not configured"):
            await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        assert fake_transport.requests == []

    async def test_unsupported_operation_is_not_retried(self, fake_transport):
        store = InMemoryCredentialStore(
            {"ANTHROPIC_API_KEY": "a1", "ANTHROPIC_API_KEYS_FALLBACK": ["a2"]}
        )
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=store)

        with pytest.raises(UnsupportedOperationError):
            await gateway.generate_multi_file_summary(
                [DocumentFile("a.pdf", "JVBERi0=")], "p", provider_id="anthropic"
            )

        assert fake_transport.requests == []
        assert gateway.ledger.get_current_key("anthropic") == "a1"

    async def test_connection_test_failure_does_not_rotate(self, gateway, fake_transport):
        fake_transport.queue_json(
            create_openai_error("invalid_request_error", "Bad key", "invalid_api_key"),
            status_code=401,
        )

        with pytest.raises(ApiTestError) as exc_info:
            await gateway.test_connection(provider_id=COMPAT)

        assert exc_info.value.error_name == "invalid_api_key"
        assert len(fake_transport.requests) == 1
        assert gateway.ledger.get_current_key(COMPAT) == "key-a"


@pytest.mark.unit
@pytest.mark.asyncio
class TestDispatch:
    async def test_configured_provider_is_default(self, monkeypatch, fake_transport):
        monkeypatch.setenv("LLM_PROVIDER", "Anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        gateway = LLMGateway.from_config(Config(), transport=fake_transport)
        fake_transport.queue_json({"content": [{"type": "text", "text": "from claude"}]})

        result = await gateway.generate_summary("text", False, "p")

        assert result == "from claude"
        assert fake_transport.requests[0].url == "https://api.anthropic.com/v1/messages"
        assert fake_transport.requests[0].headers["x-api-key"] == "sk-ant"

    async def test_overrides_replace_configured_options(self, gateway, fake_transport):
        fake_transport.queue_json(completion("ok"))

        await gateway.generate_summary(
            "text", False, "p", provider_id=COMPAT, model="custom-model", temperature=None
        )

        body = fake_transport.requests[0].json()
        assert body["model"] == "custom-model"
        assert "temperature" not in body

    async def test_enabled_generation_params_are_sent(
        self, monkeypatch, fake_transport, compat_store
    ):
        monkeypatch.setenv("LLM_ENABLE_TEMPERATURE", "true")
        monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=compat_store)
        fake_transport.queue_json(completion("ok"))

        await gateway.generate_summary("text", False, "p", provider_id=COMPAT)

        body = fake_transport.requests[0].json()
        assert body["temperature"] == 0.2
        assert "top_p" not in body
        assert "max_tokens" not in body

    async def test_chat_dispatches_conversation(self, gateway, fake_transport):
        fake_transport.queue_json(completion("answer"))

        result = await gateway.chat(
            "paper", False, [ConversationMessage("user", "Why?")], provider_id=COMPAT
        )

        assert result == "answer"
        messages = fake_transport.requests[0].json()["messages"]
        assert messages[-1]["content"].startswith("Why?")

    async def test_aclose_closes_transport(self, gateway, fake_transport):
        await gateway.aclose()

        assert fake_transport.closed


@pytest.mark.unit
class TestResolveProvider:
    def test_unknown_provider_falls_back_to_openai(self, gateway, caplog):
        with caplog.at_level(logging.WARNING, logger="llm_gateway.client"):
            provider = gateway.resolve_provider("volcano")

        assert provider.provider_id.value == "openai"
        assert "Unknown provider 'volcano'" in caplog.text

    def test_lookup_ignores_case(self, gateway):
        assert gateway.resolve_provider("GOOGLE").provider_id.value == "google"

    def test_unknown_provider_without_fallback(self, fake_transport, ledger):
        gateway = LLMGateway(
            config=Config(), registry=ProviderRegistry(), ledger=ledger, transport=fake_transport
        )

        with pytest.raises(ConfigurationError, match="registered: none"):
            gateway.resolve_provider("volcano")

    def test_build_options_uses_current_key(self, gateway):
        options = gateway.build_options(COMPAT)

        assert options.api_key == "key-a"
        assert options.api_url == "https://api.openai.com/v1/chat/completions"
        assert options.model == "gpt-3.5-turbo"
        assert options.timeout_ms == 300000

    def test_build_options_for_unconfigured_provider(self, fake_transport):
        gateway = LLMGateway(
            config=Config(),
            registry=ProviderRegistry(),
            ledger=ApiKeyLedger(InMemoryCredentialStore(), RotationStateStore()),
            transport=fake_transport,
        )

        assert gateway.build_options("openai").api_key == ""

    def test_compat_borrows_openai_key_and_model(self, monkeypatch, fake_transport):
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        store = InMemoryCredentialStore({"OPENAI_API_KEY": "sk-openai"})
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=store)

        options = gateway.build_options(COMPAT)

        assert options.api_key == "sk-openai"
        assert options.model == "gpt-4o"

    def test_compat_settings_win_over_openai(self, monkeypatch, fake_transport, compat_store):
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        monkeypatch.setenv("OPENAI_COMPAT_MODEL", "local-llama")
        compat_store.set_string("OPENAI_API_KEY", "sk-openai")
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=compat_store)

        options = gateway.build_options(COMPAT)

        assert options.api_key == "key-a"
        assert options.model == "local-llama"

    def test_other_providers_never_borrow(self, fake_transport):
        store = InMemoryCredentialStore({"OPENAI_API_KEY": "sk-openai"})
        gateway = LLMGateway.from_config(Config(), transport=fake_transport, store=store)

        assert gateway.build_options("openrouter").api_key == ""
        assert gateway.build_options("openrouter").model == "google/gemma-3-27b-it"
