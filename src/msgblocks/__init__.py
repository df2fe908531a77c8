"""Split streaming chat message text into typed, identity-stable render blocks."""

from msgblocks.core.blocks import (
    Block,
    BlockKind,
    DangerousHtml,
    DiffOp,
    FencedCode,
    ImageReference,
    MarkdownText,
    Role,
    Span,
    TextDiff,
    blocks_equal,
)
from msgblocks.core.collapse import collapse
from msgblocks.core.recycler import BlockRecycler, recycle
from msgblocks.core.segmentation import classify
from msgblocks.stream import ContentStream, StreamRegistry

__all__ = [
    "Block",
    "BlockKind",
    "BlockRecycler",
    "ContentStream",
    "DangerousHtml",
    "DiffOp",
    "FencedCode",
    "ImageReference",
    "MarkdownText",
    "Role",
    "Span",
    "StreamRegistry",
    "TextDiff",
    "blocks_equal",
    "classify",
    "collapse",
    "recycle",
]
