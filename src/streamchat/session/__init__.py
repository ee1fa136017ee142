from .controller import ChatSessionController
from .models import SessionState, StreamErrorPolicy, StreamingSession

__all__ = [
    "ChatSessionController",
    "SessionState",
    "StreamErrorPolicy",
    "StreamingSession",
]
