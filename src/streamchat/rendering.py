"""Markdown rendering for transcript display.

Hides how raw message text becomes styled rich content. All functions are
pure: the same text always renders the same way, and nothing here touches
the transcript or the terminal.
"""

import logging
import re
from collections.abc import Iterable

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.text import Text

from .transcript.models import Message, Role

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")

ROLE_HEADERS = {
    Role.USER: ("You:", "bold blue"),
    Role.ASSISTANT: ("Assistant:", "bold red"),
}


def preserve_line_breaks(text: str) -> str:
    """Turn single newlines outside fenced code into Markdown hard breaks.

    Markdown joins consecutive lines of a paragraph with a space; model
    output usually means the newline literally. Fenced code, including a
    fence still open at the end of a streaming buffer, is left untouched.
    """
    lines = text.split("\n")
    out: list[str] = []
    fence: str | None = None

    for i, line in enumerate(lines):
        match = _FENCE.match(line)
        if fence is not None:
            stripped = line.strip()
            if match and stripped[0] == fence[0] and len(stripped) >= len(fence) and set(stripped) == {fence[0]}:
                fence = None
            out.append(line)
            continue

        if match:
            fence = match.group(1)
            out.append(line)
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else ""
        if line.strip() and next_line.strip() and not line.endswith("  "):
            line += "  "
        out.append(line)

    return "\n".join(out)


def render_markdown(text: str, code_theme: str = "monokai") -> RenderableType:
    """Render message text as Markdown.

    Falls back to the raw text, unstyled, if parsing fails.
    """
    try:
        return Markdown(preserve_line_breaks(text), code_theme=code_theme)
    except Exception as e:
        logger.debug("Markdown rendering failed, using plain text: %s", e)
        return Text(text)


def render_message(message: Message) -> RenderableType:
    """Render one entry with its colored role header."""
    label, style = ROLE_HEADERS[message.role]
    return Group(
        Text(label, style=style),
        render_markdown(message.content),
        Text(""),
    )


def render_transcript(messages: Iterable[Message]) -> Group:
    """Render a whole transcript in display order."""
    return Group(*(render_message(message) for message in messages))
