"""OpenAI-compatible Chat Completions adapter."""

from __future__ import annotations

from typing import Any

from llm_gateway.core.types import ProviderId, RequestOptions
from llm_gateway.providers.base import BaseProvider, DocumentPart, Turn
from llm_gateway.providers.prompts import SYSTEM_ROLE_PROMPT


def first_choice(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


class OpenAICompatProvider(BaseProvider):
    """Any endpoint speaking the ``/chat/completions`` protocol.

    The API URL is used verbatim, so it must include the full path.
    """

    provider_id = ProviderId.OPENAI_COMPAT
    display_name = "OpenAI-compatible"

    def build_url(self, options: RequestOptions, *, stream: bool) -> str:
        return options.api_url

    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        return {"Authorization": f"Bearer {options.api_key}"}

    def format_document_part(self, part: DocumentPart) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": part.data_url}}

    def _format_turn(self, turn: Turn) -> dict[str, Any]:
        text = turn.plain_text
        if text is not None:
            return {"role": turn.role, "content": text}
        content = [
            self.format_document_part(part)
            if isinstance(part, DocumentPart)
            else {"type": "text", "text": part.text}
            for part in turn.parts
        ]
        return {"role": turn.role, "content": content}

    def build_payload(
        self,
        turns: list[Turn],
        options: RequestOptions,
        *,
        stream: bool,
        system_prompt: str | None = SYSTEM_ROLE_PROMPT,
    ) -> dict[str, Any]:
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(self._format_turn(turn) for turn in turns)

        payload: dict[str, Any] = {"model": options.model, "messages": messages, "stream": stream}
        payload.update(
            self.generation_params(
                options,
                {"temperature": "temperature", "top_p": "top_p", "max_tokens": "max_tokens"},
            )
        )
        return payload

    def extract_stream_delta(self, event: Any) -> str | None:
        delta = first_choice(event).get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        return content if isinstance(content, str) else None

    def extract_text(self, data: Any) -> str:
        message = first_choice(data).get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""

