"""OpenAI Responses API adapter."""

from __future__ import annotations

import re
from typing import Any

from llm_gateway.core.types import ProviderId, RequestOptions, Role
from llm_gateway.providers.base import BaseProvider, DocumentPart, TextPart, Turn
from llm_gateway.providers.prompts import SYSTEM_ROLE_PROMPT

_V1_PATH = re.compile(r"/v1/.+$", re.IGNORECASE)

OUTPUT_TEXT_DELTA = "response.output_text.delta"


def normalize_responses_url(api_url: str) -> str:
    """Point any ``.../v1/...`` endpoint at ``.../v1/responses``.

    >>> normalize_responses_url("https://api.openai.com/v1/chat/completions")
    'https://api.openai.com/v1/responses'
    >>> normalize_responses_url("https://proxy.example.com")
    'https://proxy.example.com/v1/responses'
    """
    if _V1_PATH.search(api_url):
        return _V1_PATH.sub("/v1/responses", api_url)
    base = api_url.rstrip("/")
    if base.lower().endswith("/v1"):
        return f"{base}/responses"
    return f"{base}/v1/responses"


class OpenAIResponsesProvider(BaseProvider):
    provider_id = ProviderId.OPENAI
    display_name = "OpenAI"
    supports_multi_file = True

    def build_url(self, options: RequestOptions, *, stream: bool) -> str:
        return normalize_responses_url(options.api_url)

    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        return {"Authorization": f"Bearer {options.api_key}"}

    @staticmethod
    def _format_part(part: TextPart | DocumentPart) -> dict[str, Any]:
        if isinstance(part, DocumentPart):
            return {"type": "input_file", "filename": part.filename, "file_data": part.data_url}
        return {"type": "input_text", "text": part.text}

    def _format_turn(self, turn: Turn) -> dict[str, Any]:
        role = "developer" if turn.role == Role.SYSTEM else turn.role
        text = turn.plain_text
        if text is not None:
            return {"role": role, "content": text}
        return {"role": role, "content": [self._format_part(p) for p in turn.parts]}

    def build_payload(
        self,
        turns: list[Turn],
        options: RequestOptions,
        *,
        stream: bool,
        system_prompt: str | None = SYSTEM_ROLE_PROMPT,
    ) -> dict[str, Any]:
        items: list[dict[str, Any]] = []
        if system_prompt:
            items.append(
                {"role": "developer", "content": [{"type": "input_text", "text": system_prompt}]}
            )
        items.extend(self._format_turn(turn) for turn in turns)

        payload: dict[str, Any] = {"model": options.model, "input": items, "stream": stream}
        payload.update(
            self.generation_params(
                options,
                {"temperature": "temperature", "top_p": "top_p", "max_tokens": "max_output_tokens"},
            )
        )
        return payload

    def extract_stream_delta(self, event: Any) -> str | None:
        if isinstance(event, dict) and event.get("type") == OUTPUT_TEXT_DELTA:
            delta = event.get("delta")
            return delta if isinstance(delta, str) else None
        return None

    def extract_text(self, data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        if isinstance(data.get("output_text"), str) and data["output_text"]:
            return data["output_text"]

        texts: list[str] = []
        for item in data.get("output") or []:
            for part in (item or {}).get("content") or []:
                if isinstance(part, dict) and part.get("type") == "output_text":
                    texts.append(part.get("text") or "")
        return "".join(texts)
