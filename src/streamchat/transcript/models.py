"""Data models for the chat transcript.

These models define the structure of transcript entries and of the
persisted blob, independent of the key-value backend used.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1


class Role(str, Enum):
    """Author of a transcript entry."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One transcript entry.

    Content is Markdown. Only the trailing assistant entry of an active
    stream is ever rewritten; everything before the last user entry is
    left as is.
    """

    role: Role
    content: str
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)


class TranscriptSnapshot(BaseModel):
    """Serialized form of a transcript: an ordered list of role-tagged messages."""

    version: int = SCHEMA_VERSION
    messages: list[Message] = Field(default_factory=list)

    def to_blob(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_blob(cls, blob: str) -> "TranscriptSnapshot":
        """Parse a stored blob.

        Raises:
            pydantic.ValidationError: If the blob is not a valid snapshot
        """
        return cls.model_validate_json(blob)
