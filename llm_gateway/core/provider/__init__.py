from llm_gateway.core.provider.provider_registry import ProviderRegistry

__all__ = ["ProviderRegistry"]
