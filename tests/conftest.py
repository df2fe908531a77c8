"""Pytest configuration and shared fixtures for msgblocks tests."""

import pytest

import msgblocks.io.logging_setup
import msgblocks.io.perf_logging


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch):
    """Point settings and log files at tmp_path; undo logging wiring afterwards.

    configure() turns propagation off on the msgblocks logger, which would
    hide records from caplog in later tests.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("MSGBLOCKS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("MSGBLOCKS_LOG_FILE", raising=False)
    monkeypatch.delenv("MSGBLOCKS_LOG_LEVEL", raising=False)
    msgblocks.io.logging_setup.reset()
    yield
    msgblocks.io.logging_setup.reset()
    msgblocks.io.perf_logging.set_enabled(True)


@pytest.fixture
def write_text(tmp_path):
    """Write a UTF-8 file under tmp_path and return its path as str."""

    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
