"""Provider-agnostic request and conversation types."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

ProgressSink = Callable[[str], "Awaitable[None] | None"]


class ProviderId(str, Enum):
    """Backends the gateway can dispatch to."""

    OPENAI = "openai"
    OPENAI_COMPAT = "openai-compat"
    GOOGLE = "google"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class Role:
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    ALL = (SYSTEM, USER, ASSISTANT)


@dataclass
class ConversationMessage:
    """A single stored chat turn."""

    role: str
    content: str

    @property
    def normalized_role(self) -> str:
        """The stored role, or ``user`` when it is not a recognized role."""
        return self.role if self.role in Role.ALL else Role.USER


@dataclass
class DocumentFile:
    """A document attached to a multi-file summary request."""

    display_name: str
    base64_content: str | None = None
    file_path: str | None = None


@dataclass
class RequestOptions:
    """Per-request settings.

    Sampling parameters left as None are omitted from the wire payload.
    """

    api_url: str = ""
    api_key: str = ""
    model: str = ""
    stream: bool = True
    timeout_ms: int = 300_000
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000
