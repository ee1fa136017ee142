from .base import CompletionClient
from .factory import create_completion_client
from .models import ChatMessage, CompletionRequest, StreamChunk, StreamingResponse
from .providers import HTTPCompletionClient, OpenAICompletionClient
from .sse import SSEDecoder, parse_line

__all__ = [
    "CompletionClient",
    "create_completion_client",
    "ChatMessage",
    "CompletionRequest",
    "StreamChunk",
    "StreamingResponse",
    "HTTPCompletionClient",
    "OpenAICompletionClient",
    "SSEDecoder",
    "parse_line",
]
