"""Rich rendering for classified blocks.

Dispatch: BLOCK_RENDERERS[type_name] -> renderer(block, options). Renderers
see only their own block's fields plus display options.

RenderCache exploits the recycler guarantee: a block that is the same
object as last time at the same position is not rendered again.

# [LAW:single-enforcer] Render skipping is decided only in render_blocks().
#
# Pygments Syntax() is for USER-AUTHORED code content (code fences, html source).
# Structural labels (headers, captions) use plain styles.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from rich.console import ConsoleRenderable, Group
from rich.markdown import Markdown
from rich.style import Style
from rich.syntax import Syntax
from rich.text import Text

from msgblocks.core.blocks import (
    Block,
    BlockKind,
    DangerousHtml,
    FencedCode,
    ImageReference,
    MarkdownText,
    Role,
    TextDiff,
)
from msgblocks.core.code_kinds import CODE_KIND_LABELS, CodeKind, code_kind
from msgblocks.core.commands import is_command_text, split_leading_command
from msgblocks.io.perf_logging import monitor_slow_path
from msgblocks.settings import DEFAULT_CODE_THEME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderOptions:
    """Display options shared by all renderers."""

    role: Role = Role.ASSISTANT
    code_theme: str = DEFAULT_CODE_THEME
    plain_text: bool = False  # render MarkdownText without markdown parsing
    allow_html: bool = False


# ─── Markdown / plain text ───────────────────────────────────────────────────


def _render_command_text(content: str) -> Text:
    command, rest = split_leading_command(content)
    t = Text()
    if command is not None:
        t.append(command, style="bold reverse")
    t.append(rest)
    return t


def _render_markdown_text(block: MarkdownText, options: RenderOptions) -> ConsoleRenderable | None:
    if not block.content.strip():
        return None
    if is_command_text(block.content, options.role):
        return _render_command_text(block.content)
    if options.plain_text or options.role == Role.SYSTEM:
        return Text(block.content)
    return Markdown(block.content, code_theme=options.code_theme)


# ─── Code ────────────────────────────────────────────────────────────────────

_EXT_TO_LANG: dict[str, str] = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
    ".rs": "rust",
    ".go": "go",
    ".rb": "ruby",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".cs": "csharp",
    ".sh": "bash",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".sql": "sql",
    ".md": "markdown",
}

_KIND_LEXERS = {
    CodeKind.SVG: "xml",
    CodeKind.HTML: "html",
}


def lexer_for_title(title: str) -> str:
    """Infer a Pygments lexer name from a fence info string.

    Titles are either a language ("python") or a file name ("app.py").
    Unknown names fall back to plain text inside Syntax.
    """
    token = title.split()[0] if title.strip() else ""
    if not token:
        return "text"
    _, ext = os.path.splitext(token)
    if ext:
        return _EXT_TO_LANG.get(ext.lower(), "text")
    return token.lower()


def _code_caption(block: FencedCode, kind: CodeKind) -> Text:
    t = Text("  ")
    t.append(block.title or "code", style="bold")
    if kind != CodeKind.CODE:
        t.append(f"  [{CODE_KIND_LABELS[kind]}]", style="dim")
    if block.is_partial:
        t.append("  …streaming", style="italic dim")
    return t


def _render_fenced_code(block: FencedCode, options: RenderOptions) -> ConsoleRenderable:
    kind = code_kind(block)
    lexer = _KIND_LEXERS.get(kind) or lexer_for_title(block.title)
    code = Syntax(
        block.code,
        lexer,
        theme=options.code_theme,
        background_color="default",
        word_wrap=True,
    )
    return Group(_code_caption(block, kind), code)


# ─── HTML / images / diffs ───────────────────────────────────────────────────


def _render_dangerous_html(block: DangerousHtml, options: RenderOptions) -> ConsoleRenderable:
    line_count = block.html.count("\n") + 1
    header = Text("  ")
    header.append("⚠ raw HTML document", style="bold yellow")
    header.append(f" ({line_count} lines, never executed)", style="dim")
    if not options.allow_html:
        header.append("  use --allow-html to show the source", style="dim")
        return header
    source = Syntax(block.html, "html", theme=options.code_theme, background_color="default", word_wrap=True)
    return Group(header, source)


def _render_image_reference(block: ImageReference, options: RenderOptions) -> Text:
    t = Text("  ")
    t.append("[image] ", style="bold")
    if block.alt:
        t.append(block.alt + " ")
    t.append(block.url, style=Style(underline=True, link=block.url))
    return t


_DIFF_STYLES = {
    "insert": "green underline",
    "delete": "red strike",
    "equal": "",
}


def _render_text_diff(block: TextDiff, options: RenderOptions) -> Text:
    t = Text()
    for op in block.diff_ops:
        t.append(op.text, style=_DIFF_STYLES[op.op])
    return t


Renderer = Callable[[Block, RenderOptions], "ConsoleRenderable | None"]

# [LAW:one-source-of-truth] One renderer per block type name.
BLOCK_RENDERERS: dict[str, Renderer] = {
    "MarkdownText": _render_markdown_text,
    "FencedCode": _render_fenced_code,
    "DangerousHtml": _render_dangerous_html,
    "ImageReference": _render_image_reference,
    "TextDiff": _render_text_diff,
}


def render_block(block: Block, options: RenderOptions | None = None) -> ConsoleRenderable | None:
    """Render one block to a Rich renderable; None when there is nothing to show."""
    renderer = BLOCK_RENDERERS.get(type(block).__name__)
    if renderer is None:
        logger.warning("no renderer for block type %s", type(block).__name__)
        return None
    return renderer(block, options or RenderOptions())


# ─── Identity-keyed cache ────────────────────────────────────────────────────


class RenderCache:
    """Renderables keyed by (position, kind), valid while the block object is the same.

    Holding the block itself keeps identity checks meaningful: an id() can
    not be recycled while the entry is alive.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[int, BlockKind], tuple[Block, RenderOptions, ConsoleRenderable | None]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, index: int, block: Block, options: RenderOptions):
        """Return (hit, renderable)."""
        entry = self._entries.get((index, block.kind))
        if entry is not None and entry[0] is block and entry[1] == options:
            return True, entry[2]
        return False, None

    def store(self, index: int, block: Block, options: RenderOptions, renderable) -> None:
        self._entries[(index, block.kind)] = (block, options, renderable)

    def prune(self, blocks: Sequence[Block]) -> None:
        """Drop entries that no longer match the current list positions."""
        live = {(i, b.kind) for i, b in enumerate(blocks)}
        for key in [k for k in self._entries if k not in live]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()


@dataclass(frozen=True)
class RenderResult:
    renderables: tuple[ConsoleRenderable, ...]
    rendered: int
    cache_hits: int


def render_blocks(
    blocks: Sequence[Block],
    options: RenderOptions | None = None,
    cache: RenderCache | None = None,
) -> RenderResult:
    """Render a block list, reusing cached output for unchanged block objects."""
    options = options or RenderOptions()
    parts: list[ConsoleRenderable] = []
    rendered = 0
    hits = 0
    with monitor_slow_path("render.blocks", logger=logger, context=lambda: {"blocks": len(blocks)}):
        for index, block in enumerate(blocks):
            hit, renderable = (False, None) if cache is None else cache.lookup(index, block, options)
            if hit:
                hits += 1
            else:
                renderable = render_block(block, options)
                rendered += 1
                if cache is not None:
                    cache.store(index, block, options, renderable)
            if renderable is not None:
                parts.append(renderable)
        if cache is not None:
            cache.prune(blocks)
    return RenderResult(tuple(parts), rendered, hits)


def expansion_hint(is_collapsed: bool) -> Text:
    """Footer line for collapsible user messages."""
    label = "▼ expand" if is_collapsed else "▲ collapse"
    return Text(f"  {label}", style="dim")
