"""Reading settings from the environment against ConfigSchema.

Two entry points: ``load_env_var`` is strict and raises ConfigError, while
``load_env_var_or_default`` is what Config uses at runtime so that one bad
value never blocks a request. ``validate_all`` reports every problem at once.
"""

import logging
import os
from collections.abc import Callable, Iterator
from typing import Any

from llm_gateway.core.config.schema import ConfigSchema, EnvVarSpec
from llm_gateway.core.exceptions import ConfigurationError
from llm_gateway.core.types import ProviderId

logger = logging.getLogger(__name__)

TRUTHY = ("true", "1", "yes", "on")


class ConfigError(ConfigurationError):
    """An environment variable could not be coerced or failed its validator.

    Attributes:
        env_var: The environment variable name
        value: The raw value that was rejected
        message: Why it was rejected
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUTHY


_PARSERS: dict[type, Callable[[str], Any]] = {
    bool: _parse_bool,
    int: lambda raw: int(raw.strip()),
    float: lambda raw: float(raw.strip()),
    str: str.strip,
}


def _coerce(spec: EnvVarSpec, raw: str) -> Any:
    parser = spec.coerce or _PARSERS.get(spec.type_hint, str.strip)
    try:
        return parser(raw)
    except (ValueError, TypeError) as e:
        message = f"Cannot convert to {spec.type_hint.__name__}: {e}"
        raise ConfigError(spec.name, raw, message) from e


def load_env_var(spec: EnvVarSpec) -> Any:
    """Read one variable; unset or blank means the declared default.

    Raises:
        ConfigError: The value cannot be coerced or the validator rejects it
    """
    raw = os.environ.get(spec.name)
    if raw is None or not raw.strip():
        return spec.default

    value = _coerce(spec, raw)
    if spec.validator is None:
        return value

    try:
        accepted = spec.validator(value)
    except TypeError as e:
        raise ConfigError(spec.name, raw, f"Validation error: {e}") from e
    if not accepted:
        raise ConfigError(spec.name, raw, f"Validation failed for type {spec.type_hint.__name__}")
    return value


def load_env_var_or_default(spec: EnvVarSpec) -> Any:
    try:
        return load_env_var(spec)
    except ConfigError as e:
        logger.warning("Ignoring invalid setting (%s); using default %r", e, spec.default)
        return spec.default


def iter_specs() -> Iterator[EnvVarSpec]:
    """Every setting the gateway reads, per-provider endpoints and models included."""
    yield from ConfigSchema.all_specs().values()
    for provider_id in ProviderId:
        yield from ConfigSchema.provider_specs(provider_id)


def validate_all() -> list[ConfigError]:
    """Check the whole environment and return every error found.

    Example:
        for error in validate_all():
            print(f"Configuration error: {error}")
    """
    errors: list[ConfigError] = []
    for spec in iter_specs():
        try:
            load_env_var(spec)
        except ConfigError as e:
            errors.append(e)
    return errors
