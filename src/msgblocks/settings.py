"""Settings file I/O for msgblocks.

Manages a JSON settings file at XDG_CONFIG_HOME/msgblocks/settings.json.
Display preferences live here; block state is never persisted.

Import as: import msgblocks.settings
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from msgblocks.core.collapse import USER_COLLAPSED_LINES

logger = logging.getLogger(__name__)

DEFAULT_CODE_THEME = "monokai"


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / msgblocks / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "msgblocks" / "settings.json"


def load_settings() -> dict:
    """Load settings from JSON file. Returns empty dict on missing/corrupt file."""
    path = get_config_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("ignoring unreadable settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring settings file %s: top level is not an object", path)
        return {}
    return data


def save_settings(data: dict) -> None:
    """Atomic write of settings dict to JSON file.

    Creates parent directories if needed. Writes to temp file then renames
    to avoid partial writes on crash.
    """
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def load_setting(key: str, default=None):
    """Load a single setting by key. Returns default if absent."""
    return load_settings().get(key, default)


def save_setting(key: str, value) -> None:
    """Save a single setting by key (merge into existing settings)."""
    data = load_settings()
    data[key] = value
    save_settings(data)


def load_user_collapsed_lines() -> int:
    """Line count after which user messages collapse."""
    raw = load_setting("user_collapsed_lines", USER_COLLAPSED_LINES)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        logger.warning("invalid user_collapsed_lines %r, using %d", raw, USER_COLLAPSED_LINES)
        return USER_COLLAPSED_LINES
    return raw


def load_code_theme() -> str:
    """Pygments theme name used for code blocks."""
    theme = load_setting("code_theme", DEFAULT_CODE_THEME)
    return theme if isinstance(theme, str) and theme else DEFAULT_CODE_THEME


def load_allow_html() -> bool:
    """Whether raw HTML blocks are shown without the confirmation banner."""
    return bool(load_setting("allow_html", False))
