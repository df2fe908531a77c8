"""Tests for ContentStream and StreamRegistry."""

import logging

import pytest

import msgblocks.io.perf_logging
from msgblocks.core.blocks import BlockKind, DiffOp, FencedCode, MarkdownText, Role, TextDiff
from msgblocks.stream import ContentStream, StreamRegistry, filter_diagram_blocks


_REPLY = (
    "Here is the fix:\n"
    "```python\n"
    "def add(a, b):\n"
    "    return a + b\n"
    "```\n"
    "It adds two numbers."
)


def _lines(n: int) -> str:
    return "\n".join(f"line {i}" for i in range(n))


# ─── Streaming identity ──────────────────────────────────────────────────────


class TestStreamingIdentity:
    def test_new_stream_has_one_empty_block(self):
        stream = ContentStream("s1")
        assert stream.blocks == (MarkdownText(""),)

    def test_append_scenario(self):
        stream = ContentStream("s1")
        first = stream.set_text("Hello\n```js\nconsole.log(1)")
        assert first[1] == FencedCode("js", "console.log(1)", is_partial=True)
        second = stream.append("\n```\nWorld")
        assert second[0] is first[0]
        assert second[1] == FencedCode("js", "console.log(1)", is_partial=False)
        assert second[2] == MarkdownText("World")

    def test_char_by_char_keeps_finished_blocks(self):
        stream = ContentStream("s1")
        opener_end = _REPLY.index("```python\n") + len("```python\n")
        for ch in _REPLY[:opener_end]:
            stream.append(ch)
        intro = stream.blocks[0]
        assert intro == MarkdownText("Here is the fix:")

        code = None
        for ch in _REPLY[opener_end:]:
            blocks = stream.append(ch)
            assert blocks[0] is intro
            if code is None and len(blocks) == 3:
                code = blocks[1]
            elif code is not None:
                assert blocks[1] is code
        assert code == FencedCode("python", "def add(a, b):\n    return a + b")
        assert stream.text == _REPLY

    def test_stats_report_reuse(self):
        stream = ContentStream("s1")
        stream.set_text("Intro\n```py\nx")
        stream.append("y")
        assert stream.stats.reused == 1
        assert stream.stats.fresh == 1

    def test_diff_blocks_are_fresh_on_every_refresh(self):
        stream = ContentStream("s1", diff_ops=[DiffOp("insert", "new")])
        first = stream.set_text("new")
        second = stream.set_text("new")
        assert isinstance(first[0], TextDiff)
        assert second[0] is not first[0]

    def test_switch_never_reuses_old_blocks(self):
        stream = ContentStream("s1")
        old = stream.set_text("same text")
        new = stream.switch("s2", "same text")
        assert stream.stream_id == "s2"
        assert new == old
        assert new[0] is not old[0]

    def test_switch_changes_role(self):
        stream = ContentStream("s1", Role.USER)
        stream.switch("s2", "/help", role="assistant")
        assert stream.role is Role.ASSISTANT
        assert not stream.is_command


# ─── Collapse ────────────────────────────────────────────────────────────────


class TestCollapse:
    def test_user_stream_collapses(self):
        stream = ContentStream("u", Role.USER)
        blocks = stream.set_text(_lines(12))
        assert stream.is_collapsed
        assert stream.shows_expansion_toggle
        assert blocks == (MarkdownText(_lines(7)),)
        assert stream.text == _lines(12)

    def test_expand_and_collapse_again(self):
        stream = ContentStream("u", Role.USER)
        stream.set_text(_lines(12))
        expanded = stream.toggle_expanded()
        assert not stream.is_collapsed
        assert stream.force_expanded
        assert stream.shows_expansion_toggle
        assert expanded == (MarkdownText(_lines(12)),)
        stream.toggle_expanded()
        assert stream.is_collapsed

    def test_set_expanded_same_value_is_noop(self):
        stream = ContentStream("u", Role.USER)
        before = stream.set_text(_lines(12))
        assert stream.set_expanded(False) is before

    def test_assistant_never_collapses(self):
        stream = ContentStream("a", Role.ASSISTANT)
        stream.set_text(_lines(40))
        assert not stream.is_collapsed
        assert not stream.shows_expansion_toggle

    def test_custom_threshold(self):
        stream = ContentStream("u", Role.USER, collapsed_lines=2)
        assert stream.set_text(_lines(3)) == (MarkdownText(_lines(2)),)

    def test_switch_clears_expansion(self):
        stream = ContentStream("u", Role.USER)
        stream.set_text(_lines(12))
        stream.set_expanded(True)
        stream.switch("u2", _lines(12))
        assert not stream.force_expanded
        assert stream.is_collapsed

    def test_collapse_can_cut_a_fence(self):
        text = "a\n```py\n" + _lines(10) + "\n```"
        stream = ContentStream("u", Role.USER)
        blocks = stream.set_text(text)
        assert blocks[-1].kind == BlockKind.CODE
        assert blocks[-1].is_partial


# ─── Diagram mode ────────────────────────────────────────────────────────────


class TestDiagramMode:
    def test_keeps_only_code(self):
        stream = ContentStream("d", diagram_mode=True)
        blocks = stream.set_text("Sure:\n```mermaid\ngraph TD\n```\nDone.")
        assert blocks == (FencedCode("mermaid", "graph TD"),)

    def test_single_block_is_kept(self):
        stream = ContentStream("d", diagram_mode=True)
        assert stream.set_text("no diagram yet") == (MarkdownText("no diagram yet"),)

    def test_filter_helper(self):
        blocks = (MarkdownText("a"), FencedCode("x", "y"), MarkdownText("b"))
        assert filter_diagram_blocks(blocks) == (FencedCode("x", "y"),)
        assert filter_diagram_blocks(blocks[:1]) == blocks[:1]

    def test_identity_survives_filtering(self):
        stream = ContentStream("d", diagram_mode=True)
        first = stream.set_text("Sure:\n```mermaid\ngraph TD\n```\nDo")
        second = stream.append("ne.")
        assert second[0] is first[0]


# ─── Commands and perf ───────────────────────────────────────────────────────


class TestStreamMisc:
    def test_user_command(self):
        stream = ContentStream("u", Role.USER)
        stream.set_text("/draw a cat")
        assert stream.is_command
        assert stream.blocks == (MarkdownText("/draw a cat"),)

    def test_assistant_slash_is_not_command(self):
        stream = ContentStream("a")
        stream.set_text("/draw a cat")
        assert not stream.is_command

    def test_invalid_role_rejected(self):
        with pytest.raises(ValueError):
            ContentStream("x", "robot")

    def test_slow_classify_logs_warning(self, monkeypatch, caplog):
        monkeypatch.setitem(msgblocks.io.perf_logging.SLOW_STAGE_THRESHOLDS_MS, "stream.classify", 0.0)
        stream = ContentStream("perf")
        with caplog.at_level(logging.WARNING, logger="msgblocks.stream"):
            stream.set_text("hello")
        assert "perf threshold exceeded stage=stream.classify" in caplog.text
        assert "stream='perf'" in caplog.text


# ─── Registry ────────────────────────────────────────────────────────────────


class TestStreamRegistry:
    def test_get_or_create_returns_same_stream(self):
        reg = StreamRegistry()
        a = reg.get_or_create("m1")
        assert reg.get_or_create("m1") is a
        assert "m1" in reg
        assert len(reg) == 1

    def test_options_apply_on_create(self):
        reg = StreamRegistry()
        stream = reg.get_or_create("m1", Role.USER, collapsed_lines=3)
        assert stream.role is Role.USER
        assert stream.collapsed_lines == 3

    def test_streams_are_isolated(self):
        reg = StreamRegistry()
        left = reg.get_or_create("left")
        right = reg.get_or_create("right")
        a = left.set_text("shared")
        b = right.set_text("shared")
        assert a[0] is not b[0]
        assert left.set_text("shared")[0] is a[0]

    def test_drop_and_reset(self):
        reg = StreamRegistry()
        reg.get_or_create("a")
        reg.get_or_create("b")
        reg.drop("a")
        reg.drop("missing")
        assert reg.get("a") is None
        assert reg.get("b") is not None
        reg.reset_all()
        assert len(reg) == 0
