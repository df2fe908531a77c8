"""Stable block identity across repeated classification of a growing text.

Single-pass prefix comparison, not a general list diff: while streaming,
only the tail block grows, so every earlier block is reused as the very
same object and consumers can skip it by identity.

// [LAW:single-enforcer] Block reuse decisions are made only by recycle().
// [LAW:locality-or-seam] Retained state lives in a BlockRecycler owned by one
// content stream, never at module level.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from msgblocks.core.blocks import Block, blocks_equal


def common_prefix_length(new_blocks: Sequence[Block], prev_blocks: Sequence[Block]) -> int:
    """Number of leading positions where prev and new are render-equal."""
    limit = min(len(new_blocks), len(prev_blocks))
    i = 0
    while i < limit and blocks_equal(prev_blocks[i], new_blocks[i]):
        i += 1
    return i


def recycle(new_blocks: Sequence[Block], prev_blocks: Sequence[Block]) -> tuple[Block, ...]:
    """Merge new blocks with previous ones, keeping previous objects on the equal prefix.

    The first mismatch (kind change, content change, either list running
    out) ends reuse; the rest of new_blocks is taken as-is.
    """
    keep = common_prefix_length(new_blocks, prev_blocks)
    return tuple(prev_blocks[:keep]) + tuple(new_blocks[keep:])


@dataclass(frozen=True)
class RecycleStats:
    reused: int
    fresh: int


class BlockRecycler:
    """Per-stream state cell holding the previous recycle() output."""

    def __init__(self) -> None:
        self._previous: tuple[Block, ...] = ()
        self._stats = RecycleStats(0, 0)

    @property
    def previous(self) -> tuple[Block, ...]:
        return self._previous

    @property
    def stats(self) -> RecycleStats:
        """Counts from the most recent recycle() call."""
        return self._stats

    def recycle(self, new_blocks: Sequence[Block]) -> tuple[Block, ...]:
        keep = common_prefix_length(new_blocks, self._previous)
        merged = self._previous[:keep] + tuple(new_blocks[keep:])
        self._previous = merged
        self._stats = RecycleStats(reused=keep, fresh=len(merged) - keep)
        return merged

    def reset(self) -> None:
        """Forget retained blocks; required when the stream changes identity."""
        self._previous = ()
        self._stats = RecycleStats(0, 0)
