"""Server-sent event framing for streaming chat completions.

Hides how a raw byte stream is cut into ``data:`` lines and how each line's
JSON payload is reduced to a content delta. The transport may split the
stream at any byte, including inside a line or a multi-byte character, so
the decoder keeps a buffer across ``feed`` calls and only parses complete
lines.
"""

import codecs
import json
import logging
import re

from .models import StreamChunk

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def extract_delta(payload: str) -> str:
    """Return ``choices[0].delta.content`` from a JSON payload, or "".

    Malformed JSON and payloads without content (role-only or finish chunks)
    both give an empty delta.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.debug("Skipping malformed SSE payload: %s", e)
        return ""

    try:
        content = data["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        logger.debug("SSE payload has no choices[0].delta: %.80s", payload)
        return ""

    return content if isinstance(content, str) else ""


def parse_line(line: str) -> StreamChunk | None:
    """Parse one complete SSE line.

    Returns:
        None for lines without the data prefix (comments, ``event:``,
        blank keep-alives), a terminal chunk for ``[DONE]``, otherwise a
        chunk carrying the extracted delta text.
    """
    if not line.startswith(StreamChunk.DATA_PREFIX):
        return None

    payload = line[len(StreamChunk.DATA_PREFIX):]
    if payload.strip() == StreamChunk.DONE_SENTINEL:
        return StreamChunk(raw_line=line, is_terminal=True)

    return StreamChunk(raw_line=line, delta_text=extract_delta(payload))


class SSEDecoder:
    """Incremental decoder turning delivered byte blocks into chunks.

    Example:
        decoder = SSEDecoder()
        decoder.feed(b'data: {"choices":[{"delta":{"content":"Hi"}}]}\\nda')
        # -> [StreamChunk(delta_text="Hi")]; "da" stays buffered
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._done = False
        self._skipped_lines = 0

    @property
    def done(self) -> bool:
        """True after the terminal sentinel was decoded."""
        return self._done

    @property
    def pending(self) -> str:
        """Text of the incomplete trailing line."""
        return self._buffer

    @property
    def skipped_lines(self) -> int:
        """Number of non-data lines discarded so far."""
        return self._skipped_lines

    def feed(self, data: bytes | str) -> list[StreamChunk]:
        """Add a delivered block and return chunks for every completed line."""
        if self._done:
            return []

        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        self._buffer += data

        # A trailing "\r" may be the first half of "\r\n"; wait for more input
        held = ""
        if self._buffer.endswith("\r"):
            held, self._buffer = "\r", self._buffer[:-1]

        *lines, rest = _LINE_BREAK.split(self._buffer)
        self._buffer = rest + held
        return self._parse_lines(lines)

    def flush(self) -> list[StreamChunk]:
        """Parse whatever is left once the transport has closed."""
        if self._done:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        lines = _LINE_BREAK.split(self._buffer)
        self._buffer = ""
        return self._parse_lines(lines)

    def _parse_lines(self, lines: list[str]) -> list[StreamChunk]:
        chunks: list[StreamChunk] = []
        for line in lines:
            chunk = parse_line(line)
            if chunk is None:
                if line:
                    self._skipped_lines += 1
                continue
            chunks.append(chunk)
            if chunk.is_terminal:
                self._done = True
                self._buffer = ""
                break
        return chunks
