"""Centralized logging bootstrap for msgblocks entry points.

// [LAW:single-enforcer] Logger handler wiring is enforced in this module only.
// [LAW:one-source-of-truth] Runtime log path/level are derived here and returned to callers.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path


@dataclass(frozen=True)
class LoggingRuntime:
    """Resolved runtime logging configuration."""

    level_name: str
    level: int
    file_path: str


_RUNTIME: LoggingRuntime | None = None


def _parse_level(raw: str) -> tuple[str, int]:
    normalized = str(raw or "INFO").strip().upper()
    level = getattr(logging, normalized, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    return str(logging.getLevelName(level)), int(level)


def _safe_name(value: str) -> str:
    candidate = "".join(ch if (ch.isalnum() or ch in {"-", "_"}) else "-" for ch in value)
    cleaned = candidate.strip("-_")
    return cleaned or "msgblocks"


def _default_log_path(run_name: str) -> str:
    log_dir = Path(
        os.environ.get("MSGBLOCKS_LOG_DIR", os.path.expanduser("~/.local/share/msgblocks/logs"))
    )
    log_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return str(log_dir / f"{_safe_name(run_name)}-{ts}-{os.getpid()}.log")


def _make_stream_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    return handler


def _make_file_handler(level: int, file_path: str) -> logging.Handler:
    handler = RotatingFileHandler(
        file_path,
        maxBytes=20 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    return handler


def configure(run_name: str = "msgblocks", level: str | None = None) -> LoggingRuntime:
    """Configure the msgblocks logger with stderr + rotating file handlers.

    Idempotent: repeated calls return the originally configured runtime.
    An explicit level wins over MSGBLOCKS_LOG_LEVEL.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level_name, level_no = _parse_level(level or os.environ.get("MSGBLOCKS_LOG_LEVEL", "INFO"))
    file_path = os.environ.get("MSGBLOCKS_LOG_FILE") or _default_log_path(run_name)
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    # [LAW:single-enforcer] All msgblocks module loggers propagate to this one logger.
    logger = logging.getLogger("msgblocks")
    logger.setLevel(level_no)
    logger.propagate = False
    logger.handlers.clear()
    logger.addHandler(_make_stream_handler(level_no))
    logger.addHandler(_make_file_handler(level_no, file_path))

    # Keep third-party logging quiet unless it is warning+.
    root = logging.getLogger()
    if root.level > logging.WARNING:
        root.setLevel(logging.WARNING)

    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level_name=level_name, level=level_no, file_path=file_path)
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    """Return configured logging runtime, if configure() has run."""
    return _RUNTIME


def reset() -> None:
    """Detach handlers and forget the runtime (tests and re-exec)."""
    global _RUNTIME
    logger = logging.getLogger("msgblocks")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    _RUNTIME = None
