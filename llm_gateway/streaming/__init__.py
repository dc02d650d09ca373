from llm_gateway.streaming.progress import ProgressDispatcher
from llm_gateway.streaming.sse_decoder import (
    DecodePhase,
    SseStreamDecoder,
    StreamDecodeState,
)

__all__ = ["DecodePhase", "ProgressDispatcher", "SseStreamDecoder", "StreamDecodeState"]
