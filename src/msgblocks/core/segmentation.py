"""Classify message text into an ordered tuple of typed blocks.

Splits USER/ASSISTANT text into structural regions:
- FencedCode: backtick fence, info string becomes the title
- DangerousHtml: a span that starts like a full HTML document
- ImageReference: a span made only of markdown image lines
- MarkdownText: everything else (guaranteed fallback)

Single left-to-right scan for fences, no backtracking. Content inside a
fence is opaque. The spans between fences go through an ordered chain of
(predicate, constructor) pairs; the last pair always matches.

// [LAW:dataflow-not-control-flow] classify() is a pure function: text in, blocks out.
// [LAW:one-source-of-truth] All text classification logic lives here.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator

from msgblocks.core.blocks import (
    Block,
    DangerousHtml,
    FencedCode,
    ImageReference,
    MarkdownText,
    Role,
    Span,
    TextDiff,
    make_diff_ops,
)


# ─── Regex patterns ──────────────────────────────────────────────────────────

# Fence open at line start: optional indent, 3+ backticks, optional info string
FENCE_OPEN_RE = re.compile(r"^[ \t]*(`{3,})([^\n]*)$", re.MULTILINE)

# Fence open mid-line: backticks after whitespace, a bare language tag, then
# a line break. Inline ```code``` spans never match.
INLINE_FENCE_OPEN_RE = re.compile(r"(?<=[ \t])(`{3,})([^\s`]*)[ \t]*(?=\r?\n)")

MD_IMAGE_REFERENCE_RE = re.compile(r"^!\[([^\]]*)]\(([^)]+)\)$")
IMAGE_EXTENSIONS_RE = re.compile(r"\.(jpg|jpeg|png|gif|bmp|svg)", re.IGNORECASE)

# Literal prefixes only: leading whitespace or comments are not recognized.
HTML_DOCUMENT_STARTS = ("<!DOCTYPE html", "<!doctype html", "<head")

_close_re_cache: dict[int, re.Pattern] = {}


def _close_re(marker_len: int) -> re.Pattern:
    """Close: backticks, length >= opening, alone on a line or ending one."""
    pattern = _close_re_cache.get(marker_len)
    if pattern is None:
        ticks = r"`{" + str(marker_len) + r",}[ \t]*\r?$"
        pattern = re.compile(
            r"^[ \t]*" + ticks + r"|(?<=[^`\n])" + ticks, re.MULTILINE
        )
        _close_re_cache[marker_len] = pattern
    return pattern


def _next_opener(text: str, pos: int) -> re.Match | None:
    """Earliest fence opener at or after pos; a line-start opener wins ties."""
    line_start = FENCE_OPEN_RE.search(text, pos)
    mid_line = INLINE_FENCE_OPEN_RE.search(text, pos)
    if mid_line is None:
        return line_start
    if line_start is None or mid_line.start() < line_start.start():
        return mid_line
    return line_start


def _line_break_before(text: str, start: int, end: int) -> int:
    """Move end back over one "\\n" or "\\r\\n", never past start."""
    if end > start and text[end - 1] == "\n":
        end -= 1
        if end > start and text[end - 1] == "\r":
            end -= 1
    return end


def _line_break_after(text: str, pos: int) -> int:
    """Move pos forward over one "\\n" or "\\r\\n"."""
    if text.startswith("\r\n", pos):
        return pos + 2
    if text.startswith("\n", pos):
        return pos + 1
    return pos


# ─── Span heuristics ─────────────────────────────────────────────────────────


def is_html_document(text: str) -> bool:
    return text.startswith(HTML_DOCUMENT_STARTS)


def _iter_lines(text: str, offset: int) -> Iterator[tuple[str, int]]:
    """Yield (line, absolute_start) for each line, without its line break."""
    start = 0
    while True:
        nl = text.find("\n", start)
        if nl == -1:
            yield text[start:], offset + start
            return
        line = text[start:nl]
        yield (line[:-1] if line.endswith("\r") else line), offset + start
        start = nl + 1


def _match_image_line(line: str) -> re.Match | None:
    m = MD_IMAGE_REFERENCE_RE.match(line)
    if m and IMAGE_EXTENSIONS_RE.search(m.group(2)):
        return m
    return None


def is_image_reference_span(text: str) -> bool:
    """True when every non-blank line is an image reference (at least one)."""
    found = False
    for line, _ in _iter_lines(text, 0):
        if not line.strip():
            continue
        if _match_image_line(line) is None:
            return False
        found = True
    return found


def _html_blocks(text: str, offset: int) -> list[Block]:
    return [DangerousHtml(text, span=Span(offset, offset + len(text)))]


def _image_blocks(text: str, offset: int) -> list[Block]:
    blocks: list[Block] = []
    for line, start in _iter_lines(text, offset):
        if not line.strip():
            continue
        m = _match_image_line(line)
        blocks.append(
            ImageReference(
                url=m.group(2),
                alt=m.group(1),
                span=Span(start, start + len(line)),
            )
        )
    return blocks


def _markdown_blocks(text: str, offset: int) -> list[Block]:
    return [MarkdownText(text, span=Span(offset, offset + len(text)))]


def _always(text: str) -> bool:
    return True


SpanPredicate = Callable[[str], bool]
SpanConstructor = Callable[[str, int], list[Block]]

# Priority order; the fallback must stay last.
SPAN_CLASSIFIERS: tuple[tuple[SpanPredicate, SpanConstructor], ...] = (
    (is_html_document, _html_blocks),
    (is_image_reference_span, _image_blocks),
    (_always, _markdown_blocks),
)


def classify_span(text: str, offset: int = 0) -> list[Block]:
    """Classify one fence-free span via the first matching heuristic."""
    for predicate, construct in SPAN_CLASSIFIERS:
        if predicate(text):
            return construct(text, offset)
    return _markdown_blocks(text, offset)


# ─── Classification ──────────────────────────────────────────────────────────


def classify(
    text: str,
    role: Role | str = Role.ASSISTANT,
    *,
    code_title: str | None = None,
    force_markdown: bool = False,
    diff_ops=None,
) -> tuple[Block, ...]:
    """Split text into an ordered, non-empty tuple of blocks.

    Forced modes (diff_ops, then code_title, then force_markdown) emit one
    block for the whole text. System text is always one MarkdownText.
    """
    whole = Span(0, len(text))
    if diff_ops:
        return (TextDiff(make_diff_ops(diff_ops), span=whole),)
    if code_title is not None:
        return (FencedCode(code_title, text, False, span=whole),)
    if force_markdown or role == Role.SYSTEM or not text:
        return (MarkdownText(text, span=whole),)
    return tuple(_scan(text))


def _scan(text: str) -> list[Block]:
    blocks: list[Block] = []
    text_len = len(text)
    pos = 0

    while True:
        m = _next_opener(text, pos)
        if m is None:
            break

        # The line break right before a line-start fence belongs to the delimiter.
        gap_end = _line_break_before(text, pos, m.start())
        if gap_end > pos:
            blocks.extend(classify_span(text[pos:gap_end], pos))

        fence, pos = _process_fence(text, m)
        blocks.append(fence)
        if fence.is_partial:
            return blocks

    if pos < text_len:
        blocks.extend(classify_span(text[pos:], pos))
    return blocks


def _process_fence(text: str, m: re.Match) -> tuple[FencedCode, int]:
    """Build the code block for an opening match; return it and the resume position."""
    text_len = len(text)
    marker_len = len(m.group(1))
    title = m.group(2).strip()
    fence_start = m.start()

    # Opening line still streaming in: no code yet.
    content_start = _line_break_after(text, m.end())
    if content_start == m.end():
        return FencedCode(title, "", True, span=Span(fence_start, text_len)), text_len

    cm = _close_re(marker_len).search(text, content_start)
    if cm is None:
        code = text[content_start:]
        return FencedCode(title, code, True, span=Span(fence_start, text_len)), text_len

    code_end = _line_break_before(text, content_start, cm.start())
    block_end = _line_break_after(text, cm.end())
    code = text[content_start:code_end]
    return FencedCode(title, code, False, span=Span(fence_start, block_end)), block_end
