"""Display-only truncation of long user-authored text."""

from __future__ import annotations

from dataclasses import dataclass


# How many lines a user message shows before collapsing.
USER_COLLAPSED_LINES = 7


@dataclass(frozen=True)
class CollapsedText:
    text: str
    is_collapsed: bool


def collapse(
    text: str,
    line_threshold: int = USER_COLLAPSED_LINES,
    force_expanded: bool = False,
    *,
    user_authored: bool = True,
) -> CollapsedText:
    """Truncate text to its first line_threshold lines when it is too long.

    Only user-authored text collapses, and never while force_expanded is set.
    The input string is returned untouched in every other case.
    """
    if not user_authored or force_expanded or line_threshold <= 0:
        return CollapsedText(text, False)
    lines = text.split("\n")
    if len(lines) <= line_threshold:
        return CollapsedText(text, False)
    return CollapsedText("\n".join(lines[:line_threshold]), True)
