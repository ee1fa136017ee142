"""Error taxonomy for streamchat.

Transport and protocol failures end a stream; persistence failures are
logged by the transcript and never reach callers. Malformed SSE lines are
recovered inside the decoder and have no exception type.
"""


class StreamChatError(Exception):
    """Base class for streamchat errors."""

    def is_retryable(self) -> bool:
        """Override in subclasses to control retry behavior."""
        return False


class TransportError(StreamChatError):
    """Connection, DNS or TLS failure while talking to the completion API."""

    def __init__(self, message: str):
        super().__init__(f"Network error: {message}")

    def is_retryable(self) -> bool:
        return True


class ProtocolError(StreamChatError):
    """The completion API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        msg = f"HTTP {status_code}"
        if body:
            msg += f": {body[:200]}"
        super().__init__(msg)
        self.status_code = status_code
        self.body = body

    def is_retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class PersistenceError(StreamChatError):
    """Reading or writing the local transcript store failed."""

    def __init__(self, message: str):
        super().__init__(f"Persistence error: {message}")
