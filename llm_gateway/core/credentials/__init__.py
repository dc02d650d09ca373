"""API key storage and rotation."""

from llm_gateway.core.credentials.key_ledger import (
    ApiKeyLedger,
    ProviderKeyMapping,
    RotationState,
    RotationStateStore,
    mask_key,
)
from llm_gateway.core.credentials.store import (
    CredentialStore,
    EnvCredentialStore,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
)

__all__ = [
    "ApiKeyLedger",
    "ProviderKeyMapping",
    "RotationState",
    "RotationStateStore",
    "mask_key",
    "CredentialStore",
    "EnvCredentialStore",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
]
