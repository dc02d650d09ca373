"""
Shared request lifecycle for provider adapters.

Each adapter describes its wire format (URL, headers, payload, how to read
text back) and inherits validation, streaming dispatch, multi-turn chat
handling and the connection test from BaseProvider.
"""

from __future__ import annotations

import abc
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from llm_gateway.core.config.schema import DEFAULT_API_URLS, DEFAULT_MODELS
from llm_gateway.core.exceptions import (
    ApiTestError,
    ConfigurationError,
    NetworkError,
    ProviderHTTPError,
    UnsupportedOperationError,
)
from llm_gateway.core.transport.http_client import HttpTransport
from llm_gateway.core.types import (
    ConversationMessage,
    DocumentFile,
    ProgressSink,
    ProviderId,
    RequestOptions,
    Role,
)
from llm_gateway.providers.prompts import (
    CONNECTION_TEST_MESSAGE,
    SYSTEM_ROLE_PROMPT,
    build_user_message,
)
from llm_gateway.streaming.progress import ProgressDispatcher
from llm_gateway.streaming.sse_decoder import SseStreamDecoder

logger = logging.getLogger(__name__)

CONNECTION_TEST_TIMEOUT_MS = 30000
PDF_MIME_TYPE = "application/pdf"
DEFAULT_DOCUMENT_NAME = "paper.pdf"


@dataclass
class TextPart:
    text: str


@dataclass
class DocumentPart:
    """A base64-encoded PDF attached to a turn."""

    data: str
    filename: str = DEFAULT_DOCUMENT_NAME

    @property
    def data_url(self) -> str:
        return f"data:{PDF_MIME_TYPE};base64,{self.data}"


@dataclass
class Turn:
    """Provider-neutral message handed to ``build_payload``."""

    role: str
    parts: list[TextPart | DocumentPart] = field(default_factory=list)

    @property
    def plain_text(self) -> str | None:
        """The text when the turn is a single text part, otherwise None."""
        if len(self.parts) == 1 and isinstance(self.parts[0], TextPart):
            return self.parts[0].text
        return None


class BaseProvider(abc.ABC):
    """Base class for provider adapters.

    Subclasses set ``provider_id`` and ``display_name`` and implement the
    wire hooks. Everything else (credential checks, dispatch between streamed
    and buffered calls, first-turn document attachment) lives here.
    """

    provider_id: ProviderId
    display_name: str
    supports_multi_file: bool = False
    # data: payloads that are keep-alives rather than JSON
    ignored_stream_payloads: tuple[str, ...] = ()

    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    @property
    def default_api_url(self) -> str:
        return DEFAULT_API_URLS[self.provider_id]

    @property
    def default_model(self) -> str:
        return DEFAULT_MODELS[self.provider_id]

    # ==================== Wire hooks ====================

    @abc.abstractmethod
    def build_url(self, options: RequestOptions, *, stream: bool) -> str:
        """Return the endpoint for a streamed or buffered request."""

    @abc.abstractmethod
    def build_headers(self, options: RequestOptions) -> dict[str, str]:
        """Return authentication and version headers."""

    @abc.abstractmethod
    def build_payload(
        self,
        turns: list[Turn],
        options: RequestOptions,
        *,
        stream: bool,
        system_prompt: str | None = SYSTEM_ROLE_PROMPT,
    ) -> dict[str, Any]:
        """Return the JSON body for the given turns."""

    @abc.abstractmethod
    def extract_stream_delta(self, event: Any) -> str | None:
        """Return the text delta carried by one parsed stream event."""

    @abc.abstractmethod
    def extract_text(self, data: Any) -> str:
        """Return the generated text of a buffered response body."""

    # ==================== Request construction ====================

    def resolve_options(self, options: RequestOptions) -> RequestOptions:
        """Fill defaults and fail fast on a missing endpoint or key."""
        api_url = (options.api_url or "").strip() or self.default_api_url
        api_key = (options.api_key or "").strip()
        if not api_url:
            raise ConfigurationError(f"{self.display_name}: API URL is not configured")
        if not api_key:
            raise ConfigurationError(f"{self.display_name}: API key is not configured")
        model = (options.model or "").strip() or self.default_model
        return replace(options, api_url=api_url, api_key=api_key, model=model)

    def document_turn(self, content: str, is_multimodal: bool, prompt: str) -> Turn:
        """User turn carrying the document, attached or inlined as text."""
        if is_multimodal:
            return Turn(Role.USER, [TextPart(prompt), DocumentPart(content)])
        return Turn(Role.USER, [TextPart(build_user_message(prompt, content))])

    def conversation_turns(
        self, content: str, is_multimodal: bool, conversation: list[ConversationMessage]
    ) -> list[Turn]:
        """Map stored chat turns; only a leading user turn carries the document."""
        turns: list[Turn] = []
        for index, message in enumerate(conversation):
            role = message.normalized_role
            if index == 0 and role == Role.USER:
                turns.append(self.document_turn(content, is_multimodal, message.content))
            else:
                turns.append(Turn(role, [TextPart(message.content)]))
        return turns

    @staticmethod
    def generation_params(options: RequestOptions, names: dict[str, str]) -> dict[str, Any]:
        """Collect the sampling parameters that were explicitly set.

        Args:
            options: Request options
            names: Maps ``temperature``/``top_p``/``max_tokens`` to wire names
        """
        params: dict[str, Any] = {}
        for attr, wire_name in names.items():
            value = getattr(options, attr)
            if value is not None:
                params[wire_name] = value
        return params

    # ==================== Operations ====================

    async def generate_summary(
        self,
        content: str,
        is_multimodal: bool,
        prompt: str,
        options: RequestOptions,
        progress: ProgressSink | None = None,
    ) -> str:
        resolved = self.resolve_options(options)
        turns = [self.document_turn(content, is_multimodal, prompt)]
        return await self._send(turns, resolved, progress)

    async def chat(
        self,
        content: str,
        is_multimodal: bool,
        conversation: list[ConversationMessage],
        options: RequestOptions,
        progress: ProgressSink | None = None,
    ) -> str:
        resolved = self.resolve_options(options)
        if not conversation:
            raise ConfigurationError(f"{self.display_name}: chat needs at least one message")
        turns = self.conversation_turns(content, is_multimodal, conversation)
        return await self._send(turns, resolved, progress)

    async def generate_multi_file_summary(
        self,
        files: list[DocumentFile],
        prompt: str,
        options: RequestOptions,
        progress: ProgressSink | None = None,
    ) -> str:
        if not self.supports_multi_file:
            raise UnsupportedOperationError(
                f"{self.display_name} does not support multi-file summaries"
            )
        resolved = self.resolve_options(options)
        if not files:
            raise ConfigurationError("No documents to summarize")

        parts: list[TextPart | DocumentPart] = [TextPart(prompt)]
        for index, document in enumerate(files, start=1):
            if not document.base64_content:
                logger.warning("Skipping %s: no base64 content", document.display_name)
                continue
            filename = document.display_name or f"document_{index}.pdf"
            parts.append(DocumentPart(document.base64_content, filename))

        if len(parts) == 1:
            raise ConfigurationError("None of the documents could be attached")

        logger.info("Sending %d document(s) to %s", len(parts) - 1, self.display_name)
        return await self._send([Turn(Role.USER, parts)], resolved, progress)

    async def test_connection(self, options: RequestOptions) -> str:
        """Send a minimal prompt and return a diagnostic success string.

        Raises:
            ConfigurationError: Endpoint or key missing
            ApiTestError: The request failed; carries request and response details
        """
        resolved = self.resolve_options(options)
        url = self.build_url(resolved, stream=False)
        payload = self.build_payload(
            [Turn(Role.USER, [TextPart(CONNECTION_TEST_MESSAGE)])],
            resolved,
            stream=False,
            system_prompt=None,
        )
        request_body = json.dumps(payload, indent=2, ensure_ascii=False)

        try:
            response = await self.transport.post(
                url,
                headers=self.build_headers(resolved),
                body=payload,
                timeout=CONNECTION_TEST_TIMEOUT_MS / 1000,
            )
        except ProviderHTTPError as e:
            raise ApiTestError(
                str(e),
                error_name=e.code,
                error_message=e.provider_message,
                status_code=e.status_code,
                request_url=url,
                request_body=request_body,
                response_headers=e.headers,
                response_body=e.body,
            ) from e
        except NetworkError as e:
            raise ApiTestError(
                str(e),
                error_name=type(e).__name__,
                error_message=str(e),
                status_code=None,
                request_url=url,
                request_body=request_body,
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if data is None:
            text, raw = "", response.text
        else:
            text = self.extract_text(data)
            raw = json.dumps(data, indent=2, ensure_ascii=False)
        return (
            f"Connection OK\nModel: {resolved.model}\nResponse: {text}\n\n"
            f"--- Raw response ---\n{raw}"
        )

    async def _send(
        self, turns: list[Turn], options: RequestOptions, progress: ProgressSink | None
    ) -> str:
        # Nowhere to deliver increments without a sink
        stream = options.stream and progress is not None
        url = self.build_url(options, stream=stream)
        headers = self.build_headers(options)
        payload = self.build_payload(turns, options, stream=stream)
        logger.debug(
            "%s request to %s (model=%s, stream=%s)", self.display_name, url, options.model, stream
        )

        if stream:
            decoder = SseStreamDecoder(
                self.extract_stream_delta,
                progress,
                ignored_payloads=self.ignored_stream_payloads,
                label=self.display_name,
            )
            text = await decoder.consume(
                self.transport.post(
                    url,
                    headers=headers,
                    body=payload,
                    timeout=options.timeout_seconds,
                    observer=decoder,
                )
            )
            if decoder.state.chunks:
                return text
            # Some servers close an SSE stream cleanly without emitting a single delta
            logger.warning(
                "%s stream ended without output; retrying without streaming", self.display_name
            )
            url = self.build_url(options, stream=False)
            payload = self.build_payload(turns, options, stream=False)

        response = await self.transport.post(
            url,
            headers=headers,
            body=payload,
            response_type="json",
            timeout=options.timeout_seconds,
        )
        text = self.extract_text(response.json())
        if text:
            ProgressDispatcher(progress).deliver(text)
        return text
