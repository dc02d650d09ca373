"""Declarative schema for environment variable configuration.

This module provides a single source of truth for all environment variables,
including automatic type coercion, validation, and documentation generation.

The schema-based approach provides:
- Single definition point for all config options
- Automatic type coercion (str -> int/float/bool)
- Validation with clear error messages
- Self-documenting configuration
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from llm_gateway.core.types import ProviderId


@dataclass(frozen=True)
class EnvVarSpec:
    """Specification for a single environment variable.

    Attributes:
        name: Environment variable name (e.g., "LLM_PROVIDER", "LOG_LEVEL")
        default: Default value if env var not set
        type_hint: Type for validation (int, str, float, bool)
        description: Human-readable description for docs
        validator: Optional custom validation function
        coerce: Optional function to convert string to target type
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


# Environment variable prefix per provider, e.g. GEMINI_API_URL, GEMINI_MODEL
PROVIDER_ENV_PREFIXES: dict[ProviderId, str] = {
    ProviderId.OPENAI: "OPENAI",
    ProviderId.OPENAI_COMPAT: "OPENAI_COMPAT",
    ProviderId.GOOGLE: "GEMINI",
    ProviderId.ANTHROPIC: "ANTHROPIC",
    ProviderId.OPENROUTER: "OPENROUTER",
}

# A provider whose own key and model are unset borrows them from another
INHERITED_CREDENTIALS: dict[ProviderId, ProviderId] = {
    ProviderId.OPENAI_COMPAT: ProviderId.OPENAI,
}

# Default endpoint per provider. OpenAI has none on purpose: the Responses
# endpoint must be configured explicitly.
DEFAULT_API_URLS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "",
    ProviderId.OPENAI_COMPAT: "https://api.openai.com/v1/chat/completions",
    ProviderId.GOOGLE: "https://generativelanguage.googleapis.com",
    ProviderId.ANTHROPIC: "https://api.anthropic.com",
    ProviderId.OPENROUTER: "https://openrouter.ai/api/v1/chat/completions",
}

DEFAULT_MODELS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "gpt-3.5-turbo",
    ProviderId.OPENAI_COMPAT: "gpt-3.5-turbo",
    ProviderId.GOOGLE: "gemini-2.5-pro",
    ProviderId.ANTHROPIC: "claude-3-5-sonnet-20241022",
    ProviderId.OPENROUTER: "google/gemma-3-27b-it",
}


class ConfigSchema:
    """Registry of all configuration environment variables.

    Each attribute is an EnvVarSpec that defines:
    - The environment variable name
    - Default value
    - Type for validation
    - Human-readable description
    - Optional validation rules
    """

    # === Logging ===

    LOG_LEVEL = EnvVarSpec(
        name="LOG_LEVEL",
        default="INFO",
        type_hint=str,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: x.split()[0].upper()
        in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )

    # === Provider Selection ===

    LLM_PROVIDER = EnvVarSpec(
        name="LLM_PROVIDER",
        default="openai",
        type_hint=str,
        description="Provider id used by the gateway facade",
    )

    LLM_CREDENTIALS_FILE = EnvVarSpec(
        name="LLM_CREDENTIALS_FILE",
        default=None,
        type_hint=str,
        description="JSON file holding API keys (unset = read keys from the environment)",
    )

    # === Request Settings ===

    LLM_STREAM = EnvVarSpec(
        name="LLM_STREAM",
        default=True,
        type_hint=bool,
        description="Stream responses when a progress sink is supplied",
    )

    REQUEST_TIMEOUT_MS = EnvVarSpec(
        name="REQUEST_TIMEOUT_MS",
        default=300000,
        type_hint=int,
        description="Per-request timeout in milliseconds (values below 30000 are raised to 30000)",
        validator=lambda x: x > 0,
    )

    # === Generation Parameters ===

    LLM_TEMPERATURE = EnvVarSpec(
        name="LLM_TEMPERATURE",
        default=0.7,
        type_hint=float,
        description="Sampling temperature",
        validator=lambda x: 0 <= x <= 2,
    )

    LLM_TOP_P = EnvVarSpec(
        name="LLM_TOP_P",
        default=1.0,
        type_hint=float,
        description="Nucleus sampling probability mass",
        validator=lambda x: 0 < x <= 1,
    )

    LLM_MAX_TOKENS = EnvVarSpec(
        name="LLM_MAX_TOKENS",
        default=4096,
        type_hint=int,
        description="Maximum output tokens",
        validator=lambda x: x > 0,
    )

    LLM_ENABLE_TEMPERATURE = EnvVarSpec(
        name="LLM_ENABLE_TEMPERATURE",
        default=False,
        type_hint=bool,
        description="Send LLM_TEMPERATURE with requests",
    )

    LLM_ENABLE_TOP_P = EnvVarSpec(
        name="LLM_ENABLE_TOP_P",
        default=False,
        type_hint=bool,
        description="Send LLM_TOP_P with requests",
    )

    LLM_ENABLE_MAX_TOKENS = EnvVarSpec(
        name="LLM_ENABLE_MAX_TOKENS",
        default=False,
        type_hint=bool,
        description="Send LLM_MAX_TOKENS with requests",
    )

    # === Key Rotation ===

    FAILED_KEY_COOLDOWN_MS = EnvVarSpec(
        name="FAILED_KEY_COOLDOWN_MS",
        default=300000,
        type_hint=int,
        description="How long a failed API key is skipped, in milliseconds",
        validator=lambda x: x >= 0,
    )

    MAX_API_SWITCH_COUNT = EnvVarSpec(
        name="MAX_API_SWITCH_COUNT",
        default=3,
        type_hint=int,
        description="Maximum key switches for one logical request",
        validator=lambda x: x >= 1,
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Return all specs keyed by environment variable name."""
        return {
            value.name: value
            for value in vars(cls).values()
            if isinstance(value, EnvVarSpec)
        }

    @classmethod
    def provider_specs(cls, provider_id: ProviderId) -> tuple[EnvVarSpec, EnvVarSpec]:
        """Build the endpoint and model specs for one provider."""
        prefix = PROVIDER_ENV_PREFIXES[provider_id]
        return (
            EnvVarSpec(
                name=f"{prefix}_API_URL",
                default=DEFAULT_API_URLS[provider_id],
                type_hint=str,
                description=f"Endpoint for the {provider_id.value} provider",
                validator=lambda x: x.startswith(("http://", "https://")),
            ),
            EnvVarSpec(
                name=f"{prefix}_MODEL",
                default=DEFAULT_MODELS[provider_id],
                type_hint=str,
                description=f"Model for the {provider_id.value} provider",
            ),
        )
