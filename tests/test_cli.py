"""Tests for the msgblocks command line."""

import json

import pytest

import msgblocks.cli
import msgblocks.io.logging_setup
import msgblocks.settings
from msgblocks.cli import build_parser, main


_REPLY = "Hello\n```js\nconsole.log(1)\n```\nWorld"


def _classify_json(capsys, *argv) -> dict:
    assert main(["classify", *argv, "--json"]) == 0
    return json.loads(capsys.readouterr().out)


class TestClassify:
    def test_json_blocks(self, write_text, capsys):
        payload = _classify_json(capsys, write_text("reply.md", _REPLY))
        assert payload["collapsed"] is False
        assert [b["kind"] for b in payload["blocks"]] == ["markdown", "code", "markdown"]
        code = payload["blocks"][1]
        assert code["title"] == "js"
        assert code["code"] == "console.log(1)"
        assert code["is_partial"] is False
        assert code["span"] == [6, 31]

    def test_table_output(self, write_text, capsys):
        assert main(["classify", write_text("reply.md", "Hi\n```py\nx = 1")]) == 0
        out = capsys.readouterr().out
        assert "markdown" in out
        assert "code" in out
        assert "(partial)" in out
        assert "x = 1" in out

    def test_user_text_collapses(self, write_text, capsys):
        text = "\n".join(f"line {i}" for i in range(12))
        payload = _classify_json(capsys, write_text("long.txt", text), "--role", "user")
        assert payload["collapsed"] is True
        assert payload["blocks"][0]["content"].count("\n") == 6

    def test_expand_flag(self, write_text, capsys):
        text = "\n".join(f"line {i}" for i in range(12))
        payload = _classify_json(capsys, write_text("long.txt", text), "--role", "user", "--expand")
        assert payload["collapsed"] is False
        assert payload["blocks"][0]["content"] == text

    def test_collapse_threshold_from_settings(self, write_text, capsys):
        msgblocks.settings.save_setting("user_collapsed_lines", 3)
        text = "\n".join(f"line {i}" for i in range(5))
        payload = _classify_json(capsys, write_text("long.txt", text), "--role", "user")
        assert payload["blocks"][0]["content"] == "line 0\nline 1\nline 2"

    def test_code_title_override(self, write_text, capsys):
        payload = _classify_json(capsys, write_text("reply.md", _REPLY), "--code-title", "raw")
        assert payload["blocks"] == [
            {"kind": "code", "title": "raw", "code": _REPLY, "is_partial": False, "span": [0, len(_REPLY)]}
        ]

    def test_markdown_override(self, write_text, capsys):
        payload = _classify_json(capsys, write_text("reply.md", _REPLY), "--markdown")
        assert [b["kind"] for b in payload["blocks"]] == ["markdown"]

    def test_diff_against(self, write_text, capsys):
        old = write_text("old.txt", "the red fox")
        new = write_text("new.txt", "the blue fox")
        payload = _classify_json(capsys, new, "--diff-against", old)
        (block,) = payload["blocks"]
        assert block["kind"] == "diff"
        assert {"op": "insert", "text": "blue"} in block["diff_ops"]

    def test_system_role(self, write_text, capsys):
        payload = _classify_json(capsys, write_text("sys.md", _REPLY), "--role", "system")
        assert [b["kind"] for b in payload["blocks"]] == ["markdown"]


class TestRender:
    def test_render_plain(self, write_text, capsys):
        assert main(["render", write_text("reply.md", _REPLY), "--plain"]) == 0
        out = capsys.readouterr().out
        assert "Hello" in out
        assert "console.log(1)" in out
        assert "World" in out

    def test_html_hidden_by_default(self, write_text, capsys):
        path = write_text("page.html", "<!DOCTYPE html>\n<p>secret</p>")
        assert main(["render", path]) == 0
        out = capsys.readouterr().out
        assert "raw HTML document" in out
        assert "secret" not in out

    def test_html_allowed_by_flag(self, write_text, capsys):
        path = write_text("page.html", "<!DOCTYPE html>\n<p>secret</p>")
        assert main(["render", path, "--allow-html"]) == 0
        assert "secret" in capsys.readouterr().out

    def test_html_allowed_by_settings(self, write_text, capsys):
        msgblocks.settings.save_setting("allow_html", True)
        path = write_text("page.html", "<!DOCTYPE html>\n<p>secret</p>")
        assert main(["render", path]) == 0
        assert "secret" in capsys.readouterr().out

    def test_collapsed_user_text_shows_hint(self, write_text, capsys):
        text = "\n".join(f"line {i}" for i in range(12))
        assert main(["render", write_text("long.txt", text), "--role", "user"]) == 0
        out = capsys.readouterr().out
        assert "▼ expand" in out
        assert "line 11" not in out


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        assert main(["classify", str(tmp_path / "nope.md")]) == 1
        assert capsys.readouterr().err.startswith("msgblocks: ")

    def test_undecodable_file(self, tmp_path, capsys):
        path = tmp_path / "bad.bin"
        path.write_bytes(b"\xff\xfe\x00bad")
        assert main(["render", str(path)]) == 1
        assert "msgblocks: " in capsys.readouterr().err

    def test_unknown_role_is_usage_error(self, write_text):
        with pytest.raises(SystemExit) as exc:
            main(["classify", write_text("a.md", "x"), "--role", "robot"])
        assert exc.value.code == 2

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_log_level_flag(self, write_text, capsys):
        assert main(["--log-level", "debug", "classify", write_text("a.md", "x"), "--json"]) == 0
        assert msgblocks.io.logging_setup.get_runtime().level_name == "DEBUG"


class TestReplayCommand:
    def test_replay_builds_app_from_args(self, write_text, monkeypatch):
        seen = {}

        def fake_run(self):
            seen["app"] = self

        monkeypatch.setattr(msgblocks.cli.ReplayApp, "run", fake_run)
        path = write_text("reply.md", _REPLY)
        assert main(["replay", path, "--role", "user", "--chunk", "3", "--delay", "0.5"]) == 0
        app = seen["app"]
        assert app.stream.role.value == "user"
        assert app.options.role.value == "user"
