"""
streamchat: a streaming chat client for OpenAI-compatible completion APIs.

Each module hides one design decision: SSE framing and transport (llm),
message persistence (transcript), display formatting (rendering) and the
prompt-to-transcript flow (session).
"""

__version__ = "0.1.0"

from .errors import PersistenceError, ProtocolError, StreamChatError, TransportError
from .llm import CompletionClient, StreamChunk, create_completion_client
from .rendering import render_markdown, render_transcript
from .session import ChatSessionController, StreamErrorPolicy
from .transcript import ChatTranscript, Message, Role, create_key_value_store

__all__ = [
    "ChatSessionController",
    "ChatTranscript",
    "CompletionClient",
    "Message",
    "PersistenceError",
    "ProtocolError",
    "Role",
    "StreamChatError",
    "StreamChunk",
    "StreamErrorPolicy",
    "TransportError",
    "create_completion_client",
    "create_key_value_store",
    "render_markdown",
    "render_transcript",
]
