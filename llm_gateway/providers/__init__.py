"""Provider adapters and the default adapter set."""

from llm_gateway.core.transport.http_client import HttpTransport
from llm_gateway.providers.anthropic import AnthropicProvider
from llm_gateway.providers.base import BaseProvider
from llm_gateway.providers.gemini import GeminiProvider
from llm_gateway.providers.openai_compat import OpenAICompatProvider
from llm_gateway.providers.openai_responses import OpenAIResponsesProvider
from llm_gateway.providers.openrouter import OpenRouterProvider


def default_providers(transport: HttpTransport) -> list[BaseProvider]:
    """One adapter per supported backend, all sharing ``transport``."""
    return [
        OpenAIResponsesProvider(transport),
        OpenAICompatProvider(transport),
        GeminiProvider(transport),
        AnthropicProvider(transport),
        OpenRouterProvider(transport),
    ]


__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "GeminiProvider",
    "OpenAICompatProvider",
    "OpenAIResponsesProvider",
    "OpenRouterProvider",
    "default_providers",
]
