"""Content streams: one growing message text and its stable block list.

// [LAW:one-source-of-truth] A ContentStream owns the only recycler cell for
// its message; StreamRegistry owns stream_id -> ContentStream.
// [LAW:locality-or-seam] Collapse, classify and recycle are composed here and
// nowhere else.
"""

from __future__ import annotations

import logging

from msgblocks.core.blocks import Block, BlockKind, Role
from msgblocks.core.collapse import USER_COLLAPSED_LINES, collapse
from msgblocks.core.commands import is_command_text
from msgblocks.core.recycler import BlockRecycler, RecycleStats
from msgblocks.core.segmentation import classify
from msgblocks.io.perf_logging import monitor_slow_path

logger = logging.getLogger(__name__)


def filter_diagram_blocks(blocks: tuple[Block, ...]) -> tuple[Block, ...]:
    """Keep only code blocks, unless the whole message is a single block."""
    if len(blocks) == 1:
        return blocks
    return tuple(b for b in blocks if b.kind == BlockKind.CODE)


class ContentStream:
    """One logical message, parsed again on every change of its text."""

    def __init__(
        self,
        stream_id: str,
        role: Role | str = Role.ASSISTANT,
        *,
        collapsed_lines: int = USER_COLLAPSED_LINES,
        code_title: str | None = None,
        force_markdown: bool = False,
        diff_ops=None,
        diagram_mode: bool = False,
    ) -> None:
        self.stream_id = stream_id
        self.role = Role(role)
        self.collapsed_lines = collapsed_lines
        self.code_title = code_title
        self.force_markdown = force_markdown
        self.diff_ops = diff_ops
        self.diagram_mode = diagram_mode
        self._text = ""
        self._force_expanded = False
        self._is_collapsed = False
        self._recycler = BlockRecycler()
        self._blocks: tuple[Block, ...] = ()
        self._refresh()

    # ─── State ───────────────────────────────────────────────────────────────

    @property
    def text(self) -> str:
        """Full text, never truncated."""
        return self._text

    @property
    def blocks(self) -> tuple[Block, ...]:
        return self._blocks

    @property
    def is_collapsed(self) -> bool:
        return self._is_collapsed

    @property
    def force_expanded(self) -> bool:
        return self._force_expanded

    @property
    def shows_expansion_toggle(self) -> bool:
        return self._is_collapsed or self._force_expanded

    @property
    def is_command(self) -> bool:
        return is_command_text(self._text, self.role)

    @property
    def stats(self) -> RecycleStats:
        return self._recycler.stats

    # ─── Updates ─────────────────────────────────────────────────────────────

    def set_text(self, text: str) -> tuple[Block, ...]:
        self._text = text
        return self._refresh()

    def append(self, delta: str) -> tuple[Block, ...]:
        return self.set_text(self._text + delta)

    def set_expanded(self, expanded: bool) -> tuple[Block, ...]:
        """Presentation toggle; the stored text is never modified."""
        if expanded == self._force_expanded:
            return self._blocks
        self._force_expanded = expanded
        return self._refresh()

    def toggle_expanded(self) -> tuple[Block, ...]:
        return self.set_expanded(not self._force_expanded)

    def switch(
        self,
        stream_id: str,
        text: str = "",
        role: Role | str | None = None,
    ) -> tuple[Block, ...]:
        """Retarget this stream to another message.

        Blocks of the old message must never be reused for the new one.
        """
        logger.debug("stream switch %s -> %s", self.stream_id, stream_id)
        self.stream_id = stream_id
        if role is not None:
            self.role = Role(role)
        self._force_expanded = False
        self._recycler.reset()
        self._text = text
        return self._refresh()

    def _refresh(self) -> tuple[Block, ...]:
        shown = collapse(
            self._text,
            self.collapsed_lines,
            self._force_expanded,
            user_authored=self.role == Role.USER,
        )
        with monitor_slow_path(
            "stream.classify",
            logger=logger,
            context=lambda: {"stream": self.stream_id, "chars": len(shown.text)},
        ):
            new_blocks = classify(
                shown.text,
                self.role,
                code_title=self.code_title,
                force_markdown=self.force_markdown,
                diff_ops=self.diff_ops,
            )
        with monitor_slow_path(
            "stream.recycle",
            logger=logger,
            context=lambda: {"stream": self.stream_id, "blocks": len(new_blocks)},
        ):
            stable = self._recycler.recycle(new_blocks)

        stats = self._recycler.stats
        logger.debug(
            "stream=%s blocks=%d reused=%d fresh=%d collapsed=%s",
            self.stream_id,
            len(stable),
            stats.reused,
            stats.fresh,
            shown.is_collapsed,
        )
        self._is_collapsed = shown.is_collapsed
        # The recycler keeps the unfiltered list; filtering is presentation only.
        self._blocks = filter_diagram_blocks(stable) if self.diagram_mode else stable
        return self._blocks


class StreamRegistry:
    """Canonical registry of content streams, one recycler cell each."""

    def __init__(self) -> None:
        self._streams: dict[str, ContentStream] = {}

    def __contains__(self, stream_id: str) -> bool:
        return stream_id in self._streams

    def __len__(self) -> int:
        return len(self._streams)

    def get(self, stream_id: str) -> ContentStream | None:
        return self._streams.get(stream_id)

    def get_or_create(self, stream_id: str, role: Role | str = Role.ASSISTANT, **options) -> ContentStream:
        stream = self._streams.get(stream_id)
        if stream is None:
            stream = ContentStream(stream_id, role, **options)
            self._streams[stream_id] = stream
        return stream

    def drop(self, stream_id: str) -> None:
        self._streams.pop(stream_id, None)

    def reset_all(self) -> None:
        self._streams.clear()
