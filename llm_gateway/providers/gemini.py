"""Google Gemini (generateContent) adapter."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from llm_gateway.core.types import ProviderId, RequestOptions, Role
from llm_gateway.providers.base import PDF_MIME_TYPE, BaseProvider, DocumentPart, Turn
from llm_gateway.providers.prompts import SYSTEM_ROLE_PROMPT

GEMINI_ROLES = {Role.USER: "user", Role.ASSISTANT: "model", Role.SYSTEM: "user"}


def candidate_parts(data: Any) -> list[Any]:
    """Parts of the first candidate, wherever this response shape puts them."""
    if not isinstance(data, dict):
        return []
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return []
    candidate = candidates[0]
    delta = candidate.get("delta") or {}
    for parts in (
        (delta.get("content") or {}).get("parts"),
        delta.get("parts"),
        (candidate.get("content") or {}).get("parts"),
    ):
        if isinstance(parts, list):
            return parts
    return []


class GeminiProvider(BaseProvider):
    provider_id = ProviderId.GOOGLE
    display_name = "Gemini"

    def build_url(self, options: RequestOptions, *, stream: bool) -> str:
        base = options.api_url.rstrip("/")
        action = "streamGenerateContent?alt=sse" if stream else "generateContent"
        return f"{base}/v1beta/models/{quote(options.model, safe='')}:{action}"

    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        return {"x-goog-api-key": options.api_key}

    @staticmethod
    def _format_turn(turn: Turn) -> dict[str, Any]:
        parts: list[dict[str, Any]] = []
        for part in turn.parts:
            if isinstance(part, DocumentPart):
                parts.append({"inlineData": {"mimeType": PDF_MIME_TYPE, "data": part.data}})
            else:
                parts.append({"text": part.text})
        return {"role": GEMINI_ROLES.get(turn.role, "user"), "parts": parts}

    def build_payload(
        self,
        turns: list[Turn],
        options: RequestOptions,
        *,
        stream: bool,
        system_prompt: str | None = SYSTEM_ROLE_PROMPT,
    ) -> dict[str, Any]:
        # Streaming is selected by the URL, not the body
        payload: dict[str, Any] = {"contents": [self._format_turn(turn) for turn in turns]}
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        generation_config = self.generation_params(
            options,
            {"temperature": "temperature", "top_p": "topP", "max_tokens": "maxOutputTokens"},
        )
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    def extract_stream_delta(self, event: Any) -> str | None:
        text = self.extract_text(event)
        return text or None

    def extract_text(self, data: Any) -> str:
        return "".join(
            part.get("text") or "" for part in candidate_parts(data) if isinstance(part, dict)
        )
