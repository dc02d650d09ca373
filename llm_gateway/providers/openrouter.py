"""OpenRouter adapter (Chat Completions with file parts)."""

from __future__ import annotations

from typing import Any

from llm_gateway.core.transport.http_client import HttpTransport
from llm_gateway.core.types import ProviderId, RequestOptions
from llm_gateway.providers.base import DocumentPart
from llm_gateway.providers.openai_compat import OpenAICompatProvider

DEFAULT_APP_URL = "http://localhost"
DEFAULT_APP_TITLE = "LLM Gateway"


class OpenRouterProvider(OpenAICompatProvider):
    """OpenRouter speaks Chat Completions but takes PDFs as ``file`` parts.

    OpenRouter sends ``: OPENROUTER PROCESSING`` comment lines while a model
    warms up; they are skipped like any other non-data line.
    """

    provider_id = ProviderId.OPENROUTER
    display_name = "OpenRouter"
    supports_multi_file = True
    ignored_stream_payloads = (": OPENROUTER PROCESSING",)

    def __init__(
        self,
        transport: HttpTransport,
        *,
        app_url: str = DEFAULT_APP_URL,
        app_title: str = DEFAULT_APP_TITLE,
    ) -> None:
        super().__init__(transport)
        self.app_url = app_url
        self.app_title = app_title

    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        headers = super().build_headers(options)
        headers["HTTP-Referer"] = self.app_url
        headers["X-Title"] = self.app_title
        return headers

    def format_document_part(self, part: DocumentPart) -> dict[str, Any]:
        return {"type": "file", "file": {"filename": part.filename, "file_data": part.data_url}}
