"""Command-line front door for jumptrace.

Builds the location index for a reference file and answers lookups in both
directions without an editor: ``index`` dumps the table, ``show`` prints the
log block for a source location, ``trace`` resolves a log line to its source.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from . import logger
from .config import (
    PATH_REGEX_KEY,
    REFERENCE_FILE_KEY,
    SKIP_REGEX_KEY,
    JumpTraceConfig,
    load_settings,
)
from .errors import ConfigurationError, NotFoundError
from .index import LocationIndex, extract_locations
from .paths import normalize_path
from .patterns import find_reference
from .render import FALLBACK_BG_SGR, css_color_to_sgr, render_block, render_source_line
from .syntax import DEFAULT_STYLE, colorize_source, read_text, sanitize_terminal_text, split_lines


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _source_location(value: str) -> tuple[str, int]:
    """argparse type for ``PATH:LINE`` source locations."""
    path, sep, line = value.rpartition(":")
    if not sep or not path:
        raise argparse.ArgumentTypeError(f"expected PATH:LINE, got {value!r}")
    return path, _positive_int(line)


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "reference",
        nargs="?",
        default=None,
        help="Reference file (build/debug log). Defaults to referenceFilePath from settings.",
    )
    common.add_argument("--config", type=Path, default=None, help="JSON settings file to read.")
    common.add_argument("--path-regex", default=None, help="Regex with (path, line) capture groups.")
    common.add_argument("--skip-regex", default=None, help="Regex for reference lines to ignore.")
    common.add_argument(
        "--workspace-root",
        type=Path,
        default=None,
        help="Directory substituted for $workspaceRoot (default: current directory).",
    )
    common.add_argument("--style", default=DEFAULT_STYLE, help="Pygments style name for source lines.")
    common.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")

    parser = argparse.ArgumentParser(
        prog="jumptrace",
        description="Correlate path:line tokens in a build log with source files.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    index_cmd = commands.add_parser("index", parents=[common], help="Print the location index.")
    index_cmd.add_argument("--json", action="store_true", help="Emit the index as JSON.")

    show_cmd = commands.add_parser(
        "show", parents=[common], help="Print the log block for a source location."
    )
    show_cmd.add_argument("location", type=_source_location, help="Source location as PATH:LINE.")
    show_cmd.add_argument(
        "--context", type=int, default=0, help="Unhighlighted log lines around the block."
    )

    trace_cmd = commands.add_parser(
        "trace", parents=[common], help="Resolve a log line to its source location."
    )
    trace_cmd.add_argument("line", type=_positive_int, help="1-based line in the reference file.")
    return parser


def _load_config(args: argparse.Namespace) -> JumpTraceConfig:
    """Merge the settings file with command-line overrides and validate."""
    settings = load_settings(args.config)
    if args.reference is not None:
        settings[REFERENCE_FILE_KEY] = args.reference
    if args.path_regex is not None:
        settings[PATH_REGEX_KEY] = args.path_regex
    if args.skip_regex is not None:
        settings[SKIP_REGEX_KEY] = args.skip_regex
    workspace_root = args.workspace_root or Path.cwd()
    return JumpTraceConfig.from_settings(settings, workspace_root=workspace_root)


def _use_color(args: argparse.Namespace) -> bool:
    if args.no_color:
        return False
    try:
        return os.isatty(sys.stdout.fileno())
    except (AttributeError, OSError, ValueError):
        return False


def _index_as_json(index: LocationIndex) -> dict[str, dict[str, dict[str, int]]]:
    payload: dict[str, dict[str, dict[str, int]]] = {}
    for path, line, entry in index.items():
        payload.setdefault(path, {})[str(line)] = {
            "logLineOffset": entry.log_line_offset,
            "highlightSpan": entry.highlight_span,
        }
    return payload


def _cmd_index(args: argparse.Namespace, config: JumpTraceConfig, index: LocationIndex) -> None:
    del config
    if args.json:
        sys.stdout.write(json.dumps(_index_as_json(index), indent=2) + "\n")
        return
    for path, line, entry in index.items():
        sys.stdout.write(
            f"{path}:{line} -> {entry.log_line_offset} (+{entry.highlight_span})\n"
        )


def _cmd_show(args: argparse.Namespace, config: JumpTraceConfig, index: LocationIndex) -> None:
    raw_path, line = args.location
    key = normalize_path(raw_path, windows=config.patterns.windows) or raw_path
    entry = index.lookup(key, line)
    if entry is None:
        raise SystemExit(f"No reference for {raw_path}:{line}")

    reference = config.require_reference_file()
    lines = split_lines(read_text(reference))
    background = None
    if _use_color(args):
        background = css_color_to_sgr(config.highlight_color) or FALLBACK_BG_SGR
    sys.stdout.write(
        render_block(
            lines,
            entry.log_line_offset,
            entry.highlight_span,
            background_sgr=background,
            context=max(0, args.context),
        )
        + "\n"
    )


def _cmd_trace(args: argparse.Namespace, config: JumpTraceConfig, index: LocationIndex) -> None:
    reference = config.require_reference_file()
    lines = split_lines(read_text(reference))
    start = min(args.line, len(lines)) - 1
    found = find_reference(lines, start, config.patterns)
    if found is None:
        raise SystemExit(f"No source reference at or above line {args.line}")
    offset, target = found

    entry = index.lookup(target.path, target.line)
    sys.stdout.write(f"{target.path}:{target.line} (log line {offset + 1}")
    if entry is not None:
        sys.stdout.write(f", block of {entry.highlight_span}")
    sys.stdout.write(")\n")

    source_path = Path(target.path)
    if not source_path.is_file():
        return
    source_lines = split_lines(read_text(source_path))
    if not 1 <= target.line <= len(source_lines):
        return
    text = source_lines[target.line - 1]
    if _use_color(args):
        text = colorize_source(text, source_path, args.style)
    else:
        text = sanitize_terminal_text(text)
    sys.stdout.write(render_source_line(target.line, text) + "\n")


_COMMANDS = {
    "index": _cmd_index,
    "show": _cmd_show,
    "trace": _cmd_trace,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Parse CLI arguments, index the reference file, and run one command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
        reference = config.require_reference_file()
    except ConfigurationError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc
    if not reference.exists():
        raise SystemExit(f"Path not found: {reference}")

    index = LocationIndex()
    try:
        asyncio.run(extract_locations(reference, index, config.patterns))
    except NotFoundError as exc:
        logger.error("Indexing failed", exc)
        raise SystemExit(str(exc)) from exc

    _COMMANDS[args.command](args, config, index)


if __name__ == "__main__":
    main()
