"""Chat transcript module for streamchat.

Provides the ordered message log and its persistence to a local key-value store.
"""

from .base import KeyValueStore
from .factory import create_key_value_store
from .models import Message, Role, TranscriptSnapshot
from .transcript import ChatTranscript

__all__ = [
    "ChatTranscript",
    "KeyValueStore",
    "Message",
    "Role",
    "TranscriptSnapshot",
    "create_key_value_store",
]
