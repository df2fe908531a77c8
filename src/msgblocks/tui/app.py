"""Streaming replay TUI using Textual.

Feeds a text into one ContentStream a chunk at a time, the way a model
reply arrives, and shows each block in its own widget. A widget is only
updated when its block is no longer the same object.

// [LAW:locality-or-seam] Thin coordinator: classification lives in
// msgblocks.stream, renderables come from msgblocks.tui.rendering.
"""

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

import msgblocks.tui.rendering
from msgblocks.core.blocks import Block, Role
from msgblocks.stream import ContentStream

logger = logging.getLogger(__name__)


def _renderable(block: Block, options: msgblocks.tui.rendering.RenderOptions):
    renderable = msgblocks.tui.rendering.render_block(block, options)
    return renderable if renderable is not None else Text("")


class BlockWidget(Static):
    """Displays one block; remembers which block object it shows."""

    DEFAULT_CSS = """
    BlockWidget {
        margin: 0 0 1 0;
    }
    """

    def __init__(self, block: Block, options: msgblocks.tui.rendering.RenderOptions) -> None:
        super().__init__(_renderable(block, options))
        self.shown_block = block

    def show(self, block: Block, options: msgblocks.tui.rendering.RenderOptions) -> None:
        self.shown_block = block
        self.update(_renderable(block, options))


class MessageView(VerticalScroll):
    """Ordered block widgets for one message, keyed by position."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._block_widgets: list[BlockWidget] = []

    @property
    def block_widgets(self) -> list[BlockWidget]:
        return list(self._block_widgets)

    def show_blocks(
        self,
        blocks: tuple[Block, ...],
        options: msgblocks.tui.rendering.RenderOptions,
    ) -> tuple[int, int]:
        """Sync widgets to blocks. Returns (kept, redrawn)."""
        kept = 0
        redrawn = 0
        widgets = self._block_widgets
        for index, block in enumerate(blocks):
            if index < len(widgets):
                widget = widgets[index]
                if widget.shown_block is block:
                    kept += 1
                    continue
                widget.show(block, options)
            else:
                widget = BlockWidget(block, options)
                widgets.append(widget)
                self.mount(widget)
            redrawn += 1
        for widget in widgets[len(blocks):]:
            widget.remove()
        del widgets[len(blocks):]
        return kept, redrawn


class ReplayApp(App):
    """Replays a text into a content stream chunk by chunk."""

    TITLE = "msgblocks replay"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("space", "toggle_pause", "Pause"),
        ("e", "toggle_expand", "Expand"),
    ]

    CSS = """
    #status {
        height: 1;
        dock: bottom;
        background: $boost;
    }
    """

    def __init__(
        self,
        text: str,
        *,
        chunk_size: int = 8,
        interval: float = 0.03,
        role: Role | str = Role.ASSISTANT,
        options: msgblocks.tui.rendering.RenderOptions | None = None,
        collapsed_lines: int | None = None,
        autoplay: bool = True,
    ) -> None:
        super().__init__()
        self._source = text
        self._chunk_size = max(1, chunk_size)
        self._interval = interval
        self._autoplay = autoplay
        self._pos = 0
        self._paused = False
        self._timer = None
        stream_options = {} if collapsed_lines is None else {"collapsed_lines": collapsed_lines}
        self.stream = ContentStream("replay", role, **stream_options)
        self.options = options or msgblocks.tui.rendering.RenderOptions(role=self.stream.role)
        self.last_kept = 0
        self.last_redrawn = 0

    def compose(self) -> ComposeResult:
        yield Header()
        yield MessageView(id="message")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        self._show()
        if self._autoplay:
            self._timer = self.set_interval(self._interval, self._tick)

    @property
    def finished(self) -> bool:
        return self._pos >= len(self._source)

    @property
    def paused(self) -> bool:
        return self._paused

    def step(self) -> bool:
        """Append the next chunk. Returns False once the source is exhausted."""
        if self.finished:
            return False
        chunk = self._source[self._pos:self._pos + self._chunk_size]
        self._pos += len(chunk)
        self.stream.append(chunk)
        self._show()
        return True

    def _tick(self) -> None:
        if self._paused:
            return
        if not self.step() and self._timer is not None:
            self._timer.stop()
            self._timer = None
            logger.debug("replay finished chars=%d blocks=%d", self._pos, len(self.stream.blocks))

    def _show(self) -> None:
        view = self.query_one("#message", MessageView)
        self.last_kept, self.last_redrawn = view.show_blocks(self.stream.blocks, self.options)
        self.query_one("#status", Static).update(self._status_text())

    def _status_text(self) -> str:
        state = "done" if self.finished else ("paused" if self._paused else "streaming")
        collapsed = " collapsed" if self.stream.is_collapsed else ""
        return (
            f" {state}{collapsed}  chars {self._pos}/{len(self._source)}"
            f"  blocks {len(self.stream.blocks)}"
            f"  kept {self.last_kept}  redrawn {self.last_redrawn}"
        )

    def action_toggle_pause(self) -> None:
        self._paused = not self._paused
        self.query_one("#status", Static).update(self._status_text())

    def action_toggle_expand(self) -> None:
        self.stream.toggle_expanded()
        self._show()
