"""Environment-driven configuration."""

from llm_gateway.core.config.config import Config
from llm_gateway.core.config.validation import ConfigError, validate_all

__all__ = ["Config", "ConfigError", "validate_all"]
