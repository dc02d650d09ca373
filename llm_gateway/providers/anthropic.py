"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any

from llm_gateway.core.types import ProviderId, RequestOptions, Role
from llm_gateway.providers.base import PDF_MIME_TYPE, BaseProvider, DocumentPart, Turn
from llm_gateway.providers.prompts import SYSTEM_ROLE_PROMPT

ANTHROPIC_VERSION = "2023-06-01"
# The Messages API rejects requests without max_tokens
DEFAULT_MAX_TOKENS = 4096
MESSAGES_PATH = "/v1/messages"


class AnthropicProvider(BaseProvider):
    provider_id = ProviderId.ANTHROPIC
    display_name = "Anthropic"

    def build_url(self, options: RequestOptions, *, stream: bool) -> str:
        base = options.api_url.rstrip("/")
        if base.endswith(MESSAGES_PATH):
            return base
        return f"{base}{MESSAGES_PATH}"

    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        return {"x-api-key": options.api_key, "anthropic-version": ANTHROPIC_VERSION}

    @staticmethod
    def _format_turn(turn: Turn) -> dict[str, Any]:
        # System instructions only live in the top-level field
        role = Role.USER if turn.role == Role.SYSTEM else turn.role
        text = turn.plain_text
        if text is not None:
            return {"role": role, "content": text}

        content: list[dict[str, Any]] = []
        for part in turn.parts:
            if isinstance(part, DocumentPart):
                content.append(
                    {
                        "type": "document",
                        "source": {
                            "type": "base64",
                            "media_type": PDF_MIME_TYPE,
                            "data": part.data,
                        },
                    }
                )
            else:
                content.append({"type": "text", "text": part.text})
        return {"role": role, "content": content}

    def build_payload(
        self,
        turns: list[Turn],
        options: RequestOptions,
        *,
        stream: bool,
        system_prompt: str | None = SYSTEM_ROLE_PROMPT,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": options.model,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [self._format_turn(turn) for turn in turns],
            "stream": stream,
        }
        if system_prompt:
            payload["system"] = system_prompt
        payload.update(
            self.generation_params(options, {"temperature": "temperature", "top_p": "top_p"})
        )
        return payload

    def extract_stream_delta(self, event: Any) -> str | None:
        # message_start, ping and the stop events carry no text
        if not isinstance(event, dict) or event.get("type") != "content_block_delta":
            return None
        text = (event.get("delta") or {}).get("text")
        return text if isinstance(text, str) else None

    def extract_text(self, data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        return "".join(
            block.get("text") or ""
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
