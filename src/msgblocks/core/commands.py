"""Leading /command recognition for display highlighting.

Display-only: operates on the text of one MarkdownText block and never
changes block boundaries or count.
"""

from __future__ import annotations

import re

from msgblocks.core.blocks import Role


_COMMAND_RE = re.compile(r"^/([A-Za-z][\w\-]*)")


def is_command_text(text: str, role: Role | str) -> bool:
    """User text starting with '/' is shown as plain text, not markdown."""
    return role == Role.USER and text.startswith("/")


def split_leading_command(text: str) -> tuple[str | None, str]:
    """Return (command token including '/', remaining text).

    (None, text) when the text does not start with a command.
    """
    m = _COMMAND_RE.match(text)
    if m is None:
        return None, text
    return m.group(0), text[m.end():]
