"""Test harness for msgblocks.

Re-exports the public helpers:
    from tests.harness import run_replay, press_and_settle, render_text, ...
"""

from tests.harness.app_runner import run_replay
from tests.harness.interactions import (
    press_and_settle,
    step_all,
)
from tests.harness.content import (
    render_text,
    widget_text,
    assert_spans_cover,
)

__all__ = [
    "run_replay",
    "press_and_settle",
    "step_all",
    "render_text",
    "widget_text",
    "assert_spans_cover",
]
