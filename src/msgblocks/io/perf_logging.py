"""Slow-path performance logging with stack capture.

Classification and recycling run on every streamed token, so a slow call
is worth a stack trace in the log.

// [LAW:one-source-of-truth] Slow-stage thresholds are centralized in SLOW_STAGE_THRESHOLDS_MS.
// [LAW:single-enforcer] Threshold-exceeded diagnostics are emitted only by monitor_slow_path().
"""

from __future__ import annotations

import logging
import time
import traceback
from collections.abc import Callable, Mapping
from contextlib import contextmanager
from typing import Any


_enabled = True


def is_enabled() -> bool:
    return _enabled


def set_enabled(val: bool) -> None:
    global _enabled
    _enabled = val


# [LAW:no-mode-explosion] One central threshold map; avoid per-callsite knobs.
SLOW_STAGE_THRESHOLDS_MS: dict[str, float] = {
    "stream.classify": 8.0,
    "stream.recycle": 2.0,
    "render.blocks": 50.0,
}

_DEFAULT_THRESHOLD_MS = 50.0
_STACK_LIMIT = 20


def _threshold_for(stage: str) -> float:
    return SLOW_STAGE_THRESHOLDS_MS.get(stage, _DEFAULT_THRESHOLD_MS)


def _resolve_context(
    context: Mapping[str, Any] | Callable[[], Mapping[str, Any]] | None,
) -> Mapping[str, Any]:
    if context is None:
        return {}
    if callable(context):
        try:
            resolved = context()
        except Exception as exc:  # pragma: no cover - logging must not break the caller
            return {"context_error": repr(exc)}
        return resolved if isinstance(resolved, Mapping) else {"context_value": resolved}
    return context


def _format_context(context: Mapping[str, Any]) -> str:
    parts = [f"{k}={context[k]!r}" for k in sorted(context.keys())]
    return " ".join(parts)


@contextmanager
def monitor_slow_path(
    stage: str,
    *,
    logger: logging.Logger,
    context: Mapping[str, Any] | Callable[[], Mapping[str, Any]] | None = None,
    threshold_ms: float | None = None,
):
    """Log a warning with the call stack when a stage exceeds its latency threshold."""
    if not _enabled:
        yield
        return
    started_ns = time.perf_counter_ns()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter_ns() - started_ns) / 1_000_000
        threshold = _threshold_for(stage) if threshold_ms is None else float(threshold_ms)
        if elapsed_ms >= threshold:
            stack = "".join(traceback.format_stack(limit=_STACK_LIMIT))
            logger.warning(
                "perf threshold exceeded stage=%s elapsed_ms=%.2f threshold_ms=%.2f context=%s\n"
                "stacktrace:\n%s",
                stage,
                elapsed_ms,
                threshold,
                _format_context(_resolve_context(context)),
                stack,
            )
