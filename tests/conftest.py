"""Shared pytest configuration and fixtures for LLM Gateway tests."""

import os

import pytest

from llm_gateway.core.credentials import ApiKeyLedger, InMemoryCredentialStore, RotationStateStore
from llm_gateway.core.types import RequestOptions

# Import HTTP mocking fixtures from fixtures modules
pytest_plugins = ["tests.fixtures.mock_http", "tests.fixtures.fake_transport"]

# Every variable the gateway reads; cleared before each test so a developer's
# .env or shell never leaks into assertions
GATEWAY_ENV_VARS = (
    "LOG_LEVEL",
    "LLM_PROVIDER",
    "LLM_CREDENTIALS_FILE",
    "LLM_STREAM",
    "REQUEST_TIMEOUT_MS",
    "LLM_TEMPERATURE",
    "LLM_TOP_P",
    "LLM_MAX_TOKENS",
    "LLM_ENABLE_TEMPERATURE",
    "LLM_ENABLE_TOP_P",
    "LLM_ENABLE_MAX_TOKENS",
    "FAILED_KEY_COOLDOWN_MS",
    "MAX_API_SWITCH_COUNT",
)
PROVIDER_PREFIXES = ("OPENAI", "OPENAI_COMPAT", "GEMINI", "ANTHROPIC", "OPENROUTER")


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def clean_gateway_environment(monkeypatch):
    """Remove gateway settings and provider keys from the environment."""
    for name in GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for prefix in PROVIDER_PREFIXES:
        for suffix in ("_API_KEY", "_API_KEYS_FALLBACK", "_API_URL", "_MODEL"):
            monkeypatch.delenv(f"{prefix}{suffix}", raising=False)
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def credential_store():
    return InMemoryCredentialStore()


@pytest.fixture
def ledger(credential_store, clock):
    """Ledger over an in-memory store with a fresh rotation state."""
    return ApiKeyLedger(credential_store, RotationStateStore(), clock=clock)


@pytest.fixture
def request_options():
    """Options with an endpoint and key for the OpenAI-compatible mock host."""
    return RequestOptions(
        api_url="https://api.openai.com/v1/chat/completions",
        api_key="test-openai-key-mocked",
        model="gpt-4",
    )


@pytest.fixture(scope="session")
def integration_api_key():
    """Real key for integration tests; they skip without one."""
    key = os.environ.get("LLMGW_TEST_API_KEY")
    if not key:
        pytest.skip("LLMGW_TEST_API_KEY not set")
    return key


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires valid API keys)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "tests/unit/" in path or "tests/cli/" in path:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in path:
            item.add_marker(pytest.mark.integration)
