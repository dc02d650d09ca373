"""Configuration object for the LLM gateway.

All values are loaded from environment variables (and a .env file, read at
package import) at construction time using schema-based validation.
Construct a fresh Config after changing the environment; nothing is cached
at module level.
"""

from __future__ import annotations

import os

from llm_gateway.core.config.schema import INHERITED_CREDENTIALS, ConfigSchema
from llm_gateway.core.config.validation import load_env_var_or_default
from llm_gateway.core.types import ProviderId

MIN_REQUEST_TIMEOUT_MS = 30000


class Config:
    """Direct property access to every gateway setting."""

    def __init__(self) -> None:
        self._values = {
            name: load_env_var_or_default(spec)
            for name, spec in ConfigSchema.all_specs().items()
        }
        self._provider_urls: dict[str, str] = {}
        self._provider_models: dict[str, str] = {}
        for provider_id in ProviderId:
            url_spec, model_spec = ConfigSchema.provider_specs(provider_id)
            self._provider_urls[provider_id.value] = load_env_var_or_default(url_spec)
            self._provider_models[provider_id.value] = load_env_var_or_default(model_spec)

        for provider_id, source in INHERITED_CREDENTIALS.items():
            own = ConfigSchema.provider_specs(provider_id)[1].name
            inherited = ConfigSchema.provider_specs(source)[1].name
            if not os.environ.get(own, "").strip() and os.environ.get(inherited, "").strip():
                self._provider_models[provider_id.value] = self._provider_models[source.value]

    # Logging
    @property
    def log_level(self) -> str:
        return str(self._values["LOG_LEVEL"])

    # Provider selection
    @property
    def provider(self) -> str:
        return str(self._values["LLM_PROVIDER"]).strip().lower()

    @property
    def credentials_file(self) -> str | None:
        return self._values["LLM_CREDENTIALS_FILE"]

    def provider_api_url(self, provider_id: str) -> str:
        return self._provider_urls.get(provider_id.lower(), "")

    def provider_model(self, provider_id: str) -> str:
        return self._provider_models.get(provider_id.lower(), "")

    # Request settings
    @property
    def stream(self) -> bool:
        return bool(self._values["LLM_STREAM"])

    @property
    def request_timeout_ms(self) -> int:
        return max(int(self._values["REQUEST_TIMEOUT_MS"]), MIN_REQUEST_TIMEOUT_MS)

    # Generation parameters; None means "do not send"
    @property
    def temperature(self) -> float | None:
        if not self._values["LLM_ENABLE_TEMPERATURE"]:
            return None
        return float(self._values["LLM_TEMPERATURE"])

    @property
    def top_p(self) -> float | None:
        if not self._values["LLM_ENABLE_TOP_P"]:
            return None
        return float(self._values["LLM_TOP_P"])

    @property
    def max_tokens(self) -> int | None:
        if not self._values["LLM_ENABLE_MAX_TOKENS"]:
            return None
        return int(self._values["LLM_MAX_TOKENS"])

    # Key rotation
    @property
    def failed_key_cooldown_ms(self) -> int:
        return int(self._values["FAILED_KEY_COOLDOWN_MS"])

    @property
    def max_api_switch_count(self) -> int:
        return int(self._values["MAX_API_SWITCH_COUNT"])
