"""CLI entry point for msgblocks."""

import argparse
import json
import logging
import sys

from rich.console import Console
from rich.text import Text

import msgblocks.io.logging_setup
import msgblocks.settings
import msgblocks.tui.rendering
from msgblocks.core.blocks import Block, Role, block_to_dict
from msgblocks.stream import ContentStream
from msgblocks.tui.app import ReplayApp
from msgblocks.wordsdiff import words_diff

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _add_common_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("file", help="Text file to process, or - for stdin")
    sub.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.ASSISTANT.value,
        help="Author role of the text (default: assistant)",
    )
    sub.add_argument(
        "--code-title",
        default=None,
        help="Treat the whole text as one code block with this title",
    )
    sub.add_argument(
        "--markdown",
        action="store_true",
        default=False,
        help="Treat the whole text as one markdown block",
    )
    sub.add_argument(
        "--diff-against",
        default=None,
        metavar="OLD_FILE",
        help="Show the text as a word diff against OLD_FILE",
    )
    sub.add_argument(
        "--expand",
        action="store_true",
        default=False,
        help="Never collapse long user messages",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msgblocks",
        description="Split chat message text into typed, stable render blocks",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: MSGBLOCKS_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify_cmd = subparsers.add_parser("classify", help="Print the block list of a text")
    _add_common_arguments(classify_cmd)
    classify_cmd.add_argument("--json", action="store_true", default=False, help="Emit JSON")

    render_cmd = subparsers.add_parser("render", help="Render a text's blocks to the terminal")
    _add_common_arguments(render_cmd)
    render_cmd.add_argument(
        "--allow-html",
        action="store_true",
        default=None,
        help="Show the source of raw HTML documents (never executed)",
    )
    render_cmd.add_argument(
        "--plain",
        action="store_true",
        default=False,
        help="Render text blocks without markdown formatting",
    )

    replay_cmd = subparsers.add_parser("replay", help="Stream a text into the TUI chunk by chunk")
    replay_cmd.add_argument("file", help="Text file to replay")
    replay_cmd.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.ASSISTANT.value,
        help="Author role of the text (default: assistant)",
    )
    replay_cmd.add_argument("--chunk", type=int, default=8, help="Characters per step (default: 8)")
    replay_cmd.add_argument("--delay", type=float, default=0.03, help="Seconds between steps (default: 0.03)")
    return parser


def _stream_for(args, text: str) -> ContentStream:
    diff_ops = None
    if args.diff_against:
        diff_ops = words_diff(_read_source(args.diff_against), text)
    stream = ContentStream(
        "cli",
        args.role,
        collapsed_lines=msgblocks.settings.load_user_collapsed_lines(),
        code_title=args.code_title,
        force_markdown=args.markdown,
        diff_ops=diff_ops,
    )
    if args.expand:
        stream.set_expanded(True)
    stream.set_text(text)
    return stream


def _preview(block: Block) -> str:
    data = block_to_dict(block)
    body = next(
        (data[key] for key in ("content", "code", "html", "url") if key in data),
        "",
    )
    if "diff_ops" in data:
        body = "".join(op["text"] for op in data["diff_ops"])
    body = body.replace("\n", "⏎")
    if len(body) > _PREVIEW_CHARS:
        body = body[:_PREVIEW_CHARS] + "…"
    return body


def _cmd_classify(args, console: Console) -> int:
    stream = _stream_for(args, _read_source(args.file))
    if args.json:
        payload = {
            "collapsed": stream.is_collapsed,
            "blocks": [block_to_dict(b) for b in stream.blocks],
        }
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return 0
    for index, block in enumerate(stream.blocks):
        line = Text(f"{index:>3} ")
        line.append(f"{block.kind.value:<8}", style="bold")
        line.append(f" [{block.span.start}:{block.span.end}] ", style="dim")
        if getattr(block, "is_partial", False):
            line.append("(partial) ", style="italic")
        line.append(_preview(block))
        console.print(line)
    if stream.is_collapsed:
        console.print(Text("(collapsed, use --expand for the full text)", style="dim"))
    return 0


def _cmd_render(args, console: Console) -> int:
    stream = _stream_for(args, _read_source(args.file))
    allow_html = msgblocks.settings.load_allow_html() if args.allow_html is None else args.allow_html
    options = msgblocks.tui.rendering.RenderOptions(
        role=stream.role,
        code_theme=msgblocks.settings.load_code_theme(),
        plain_text=args.plain,
        allow_html=allow_html,
    )
    result = msgblocks.tui.rendering.render_blocks(stream.blocks, options)
    for renderable in result.renderables:
        console.print(renderable)
    if stream.shows_expansion_toggle:
        console.print(msgblocks.tui.rendering.expansion_hint(stream.is_collapsed))
    return 0


def _cmd_replay(args, console: Console) -> int:
    text = _read_source(args.file)
    options = msgblocks.tui.rendering.RenderOptions(
        role=Role(args.role),
        code_theme=msgblocks.settings.load_code_theme(),
        allow_html=msgblocks.settings.load_allow_html(),
    )
    app = ReplayApp(
        text,
        chunk_size=args.chunk,
        interval=args.delay,
        role=args.role,
        options=options,
        collapsed_lines=msgblocks.settings.load_user_collapsed_lines(),
    )
    app.run()
    return 0


_COMMANDS = {
    "classify": _cmd_classify,
    "render": _cmd_render,
    "replay": _cmd_replay,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    runtime = msgblocks.io.logging_setup.configure(run_name=args.command, level=args.log_level)
    logger.debug("logging to %s at %s", runtime.file_path, runtime.level_name)

    console = Console()
    try:
        return _COMMANDS[args.command](args, console)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("input error", exc_info=True)
        print(f"msgblocks: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
