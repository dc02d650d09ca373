"""RESPX-based HTTP mocking fixtures for testing.

This module provides reusable fixtures for mocking the provider endpoints
(OpenAI, Anthropic, Gemini, OpenRouter) at the httpx level using RESPX.
"""

import json

import httpx
import pytest
import respx

# === OpenAI Response Fixtures ===


@pytest.fixture
def openai_chat_completion():
    """Standard Chat Completions response."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1677652288,
        "model": "gpt-4",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello! How can I help you today?"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 15, "total_tokens": 25},
    }


@pytest.fixture
def openai_streaming_chunks():
    """Chat Completions streaming chunks."""
    return [
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"role":"assistant","content":""}}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"content":"Hello"}}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{"content":"!"}}]}\n\n',
        b'data: {"id":"chatcmpl-123","choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}\n\n',
        b"data: [DONE]\n\n",
    ]


@pytest.fixture
def openai_responses_result():
    """Responses API result without the ``output_text`` convenience field."""
    return {
        "id": "resp_123",
        "object": "response",
        "output": [
            {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": "OK", "annotations": []}],
            }
        ],
    }


@pytest.fixture
def openai_responses_streaming_events():
    """Responses API streaming events."""
    return [
        b'event: response.created\ndata: {"type":"response.created","response":{"id":"resp_1"}}\n\n',
        b'event: response.output_text.delta\ndata: {"type":"response.output_text.delta","delta":"Sum"}\n\n',
        b'event: response.output_text.delta\ndata: {"type":"response.output_text.delta","delta":"mary"}\n\n',
        b'event: response.completed\ndata: {"type":"response.completed","response":{"id":"resp_1"}}\n\n',
    ]


# === Anthropic Response Fixtures ===


@pytest.fixture
def anthropic_message_response():
    """Standard Anthropic message response."""
    return {
        "id": "msg_test123",
        "type": "message",
        "role": "assistant",
        "content": [{"type": "text", "text": "Hello! How can I help you today?"}],
        "model": "claude-3-5-sonnet-20241022",
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 10, "output_tokens": 15},
    }


@pytest.fixture
def anthropic_streaming_events():
    """Anthropic streaming events, including a ping."""
    return [
        b'event: message_start\ndata: {"type":"message_start","message":{"id":"msg_1"}}\n\n',
        b'event: ping\ndata: {"type": "ping"}\n\n',
        b'event: content_block_delta\ndata: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}\n\n',
        b'event: content_block_delta\ndata: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":" there"}}\n\n',
        b'event: message_stop\ndata: {"type":"message_stop"}\n\n',
    ]


# === Gemini Response Fixtures ===


@pytest.fixture
def gemini_generate_response():
    """Gemini generateContent response."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": "Hello "}, {"text": "Gemini"}]},
                "finishReason": "STOP",
            }
        ]
    }


@pytest.fixture
def gemini_streaming_events():
    """Gemini ``alt=sse`` stream with CRLF framing."""
    return [
        b'data: {"candidates":[{"content":{"role":"model","parts":[{"text":"Par"}]}}]}\r\n\r\n',
        b'data: {"candidates":[{"content":{"role":"model","parts":[{"text":"tial"}]}}]}\r\n\r\n',
    ]


# === RESPX routers ===


@pytest.fixture
def mock_openai_api():
    """Mock OpenAI API endpoints with RESPX.

    Example:
        def test_chat(mock_openai_api, openai_chat_completion):
            mock_openai_api.post("/v1/chat/completions").mock(
                return_value=httpx.Response(200, json=openai_chat_completion)
            )
    """
    with respx.mock(base_url="https://api.openai.com") as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_anthropic_api():
    """Mock Anthropic API endpoints with RESPX."""
    with respx.mock(base_url="https://api.anthropic.com") as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_gemini_api():
    """Mock Gemini API endpoints with RESPX."""
    with respx.mock(base_url="https://generativelanguage.googleapis.com") as respx_mock:
        yield respx_mock


@pytest.fixture
def mock_openrouter_api():
    """Mock OpenRouter API endpoints with RESPX."""
    with respx.mock(base_url="https://openrouter.ai") as respx_mock:
        yield respx_mock


# === Helper Functions ===


def create_openai_error(error_type: str, message: str, code: str | None = None) -> dict:
    """Create an OpenAI-formatted error body."""
    return {"error": {"message": message, "type": error_type, "code": code}}


def create_anthropic_error(error_type: str, message: str) -> dict:
    """Create an Anthropic-formatted error body."""
    return {"type": "error", "error": {"type": error_type, "message": message}}


def create_streaming_response(chunks: list[bytes], status_code: int = 200) -> httpx.Response:
    """Create a streaming HTTP response from chunks.

    Args:
        chunks: List of byte chunks to stream
        status_code: HTTP status

    Returns:
        httpx.Response configured for streaming
    """
    return httpx.Response(
        status_code=status_code,
        headers={"content-type": "text/event-stream"},
        content=b"".join(chunks),
    )


def sent_json(route: respx.Route, call: int = -1) -> dict:
    """Decode the JSON body of a recorded request."""
    return json.loads(route.calls[call].request.content)
