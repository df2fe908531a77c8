"""Typed content blocks produced by the classifier.

Each block kind is a frozen dataclass with a shared ``kind`` discriminator.
``span`` records the source range the block was classified from; it is
metadata only and never takes part in equality.

// [LAW:one-source-of-truth] blocks_equal() is the only render-equivalence test.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from msgblocks.core.errors import InvalidDiffOpError


# ─── Data model ──────────────────────────────────────────────────────────────


class BlockKind(Enum):
    MARKDOWN = "markdown"
    CODE = "code"
    HTML = "html"
    IMAGE = "image"
    DIFF = "diff"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Span:
    start: int
    end: int  # exclusive


_NO_SPAN = Span(0, 0)

DIFF_OP_NAMES = frozenset({"insert", "delete", "equal"})


@dataclass(frozen=True)
class DiffOp:
    """One externally computed diff operation."""

    op: str  # "insert" | "delete" | "equal"
    text: str

    def __post_init__(self) -> None:
        if self.op not in DIFF_OP_NAMES:
            raise InvalidDiffOpError(
                f"unknown diff op {self.op!r}; expected one of {sorted(DIFF_OP_NAMES)}"
            )


@dataclass(frozen=True)
class MarkdownText:
    content: str
    span: Span = field(default=_NO_SPAN, compare=False, repr=False)

    kind = BlockKind.MARKDOWN


@dataclass(frozen=True)
class FencedCode:
    title: str
    code: str
    is_partial: bool = False
    span: Span = field(default=_NO_SPAN, compare=False, repr=False)

    kind = BlockKind.CODE


@dataclass(frozen=True)
class DangerousHtml:
    html: str
    span: Span = field(default=_NO_SPAN, compare=False, repr=False)

    kind = BlockKind.HTML


@dataclass(frozen=True)
class ImageReference:
    url: str
    alt: str | None = None
    span: Span = field(default=_NO_SPAN, compare=False, repr=False)

    kind = BlockKind.IMAGE


@dataclass(frozen=True)
class TextDiff:
    diff_ops: tuple[DiffOp, ...]
    span: Span = field(default=_NO_SPAN, compare=False, repr=False)

    kind = BlockKind.DIFF


Block = Union[MarkdownText, FencedCode, DangerousHtml, ImageReference, TextDiff]


def make_diff_ops(raw) -> tuple[DiffOp, ...]:
    """Normalize (op, text) pairs or {"op", "text"} dicts into DiffOps.

    Accepts diff-match-patch style integer ops as well (-1, 0, 1).
    """
    ops: list[DiffOp] = []
    for item in raw or ():
        if isinstance(item, DiffOp):
            ops.append(item)
            continue
        if isinstance(item, dict):
            op, text = item.get("op"), item.get("text", "")
        else:
            try:
                op, text = item
            except (TypeError, ValueError) as exc:
                raise InvalidDiffOpError(f"diff op must be an (op, text) pair: {item!r}") from exc
        op = _INT_OPS.get(op, op)
        ops.append(DiffOp(op=str(op), text=str(text)))
    return tuple(ops)


_INT_OPS = {-1: "delete", 0: "equal", 1: "insert"}


# ─── Equality predicate ──────────────────────────────────────────────────────


def _markdown_equal(a: MarkdownText, b: MarkdownText) -> bool:
    return a.content == b.content


def _code_equal(a: FencedCode, b: FencedCode) -> bool:
    return a.title == b.title and a.code == b.code and a.is_partial == b.is_partial


def _html_equal(a: DangerousHtml, b: DangerousHtml) -> bool:
    return a.html == b.html


def _image_equal(a: ImageReference, b: ImageReference) -> bool:
    return a.url == b.url and a.alt == b.alt


def _diff_never_equal(a: TextDiff, b: TextDiff) -> bool:
    # Stale diff highlighting is worse than a re-render.
    return False


_EQUALITY = {
    BlockKind.MARKDOWN: _markdown_equal,
    BlockKind.CODE: _code_equal,
    BlockKind.HTML: _html_equal,
    BlockKind.IMAGE: _image_equal,
    BlockKind.DIFF: _diff_never_equal,
}


def blocks_equal(a: Block | None, b: Block | None) -> bool:
    """Return True when two blocks would render identically."""
    if a is None or b is None:
        return False
    kind = getattr(a, "kind", None)
    if kind is None or kind != getattr(b, "kind", None):
        return False
    return _EQUALITY[kind](a, b)


def block_to_dict(block: Block) -> dict:
    """JSON-ready view of a block, span included."""
    data: dict = {"kind": block.kind.value}
    if isinstance(block, MarkdownText):
        data["content"] = block.content
    elif isinstance(block, FencedCode):
        data.update(title=block.title, code=block.code, is_partial=block.is_partial)
    elif isinstance(block, DangerousHtml):
        data["html"] = block.html
    elif isinstance(block, ImageReference):
        data.update(url=block.url, alt=block.alt)
    elif isinstance(block, TextDiff):
        data["diff_ops"] = [{"op": d.op, "text": d.text} for d in block.diff_ops]
    data["span"] = [block.span.start, block.span.end]
    return data
