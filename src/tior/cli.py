from __future__ import annotations

import argparse
import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter
from tio_runner import (
    RunOptions,
    RunnerSettings,
    TioRunnerError,
    map_language,
    run_code,
)
from tio_runner.execution.types import ExecutionResult
from tio_runner.languages import DEFAULT_TIO_LANGUAGES

_CONSOLE = Console(no_color=False)
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="tior")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for running source files on tio.run.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="tior",
        description=(
            "tio-py-runner CLI\n"
            "Run a source file remotely on tio.run and report its output and timings.\n"
            "Nothing is compiled or executed on this machine."
        ),
        epilog=(
            "Quick Examples:\n"
            "  tior run main.py --language python3 --stdin '3 4'\n"
            "  tior run main.cpp --lang cpp --compiler clang++ --stdin-file in.txt\n"
            "  tior run main.c --language c-gcc --cflag -O2 --arg first\n"
            "  tior languages"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--config",
        help=(
            "Path to a TOML settings file.\n"
            "Reads base_url, refresh_seconds, min_timeout_ms and default_timeout_ms."
        ),
    )
    parser.add_argument(
        "--base-url",
        help="Override the tio.run base URL (default: https://tio.run).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log endpoint discovery and request details to stderr.",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    run_cmd = sub.add_parser(
        "run",
        help="Run one source file on tio.run.",
        description=(
            "Send a source file to tio.run and print its output.\n"
            "The process exit status mirrors the remote exit code (124 on timeout, 1 when outside 0-255)."
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("source", help="Source file to execute.")
    lang_group = run_cmd.add_mutually_exclusive_group(required=True)
    lang_group.add_argument(
        "--language",
        help="tio.run language token, used as-is.\nExample: --language python3",
    )
    lang_group.add_argument(
        "--lang",
        help="Internal language id mapped to a tio.run token.\nExample: --lang cpp",
    )
    run_cmd.add_argument(
        "--compiler",
        default="",
        help="Compiler hint used with --lang (e.g. clang++, python2).",
    )
    stdin_group = run_cmd.add_mutually_exclusive_group()
    stdin_group.add_argument("--stdin", help="Literal text passed as standard input.")
    stdin_group.add_argument("--stdin-file", help="File whose contents are passed as standard input.")
    run_cmd.add_argument(
        "--timeout-ms",
        type=int,
        help="Request timeout in milliseconds (floored at the configured minimum).",
    )
    run_cmd.add_argument(
        "--arg",
        dest="argv",
        action="append",
        default=[],
        help="Program argument; repeat for several, order is kept.",
    )
    run_cmd.add_argument(
        "--cflag",
        dest="cflags",
        action="append",
        default=[],
        help="Compiler flag; repeat for several, order is kept.",
    )

    sub.add_parser(
        "languages",
        help="List the default language mapping.",
        description="Show the default tio.run token for each internal language id.",
        formatter_class=_HELP_FORMATTER,
    )
    return parser


def build_settings(args: argparse.Namespace) -> RunnerSettings:
    """Create RunnerSettings from the global CLI flags.

    Example:
        ```python
        settings = build_settings(args)
        ```
    """
    settings = RunnerSettings.from_file(args.config) if args.config else RunnerSettings()
    if args.base_url:
        settings = RunnerSettings(
            base_url=args.base_url,
            refresh_seconds=settings.refresh_seconds,
            min_timeout_ms=settings.min_timeout_ms,
            default_timeout_ms=settings.default_timeout_ms,
            config_path=settings.config_path,
        )
    return settings


def process_status(exit_code: int) -> int:
    """Map a remote exit code onto a valid process status (0-255, otherwise 1).

    Example:
        ```python
        process_status(256)  # 1
        ```
    """
    return exit_code if 0 <= exit_code <= 255 else 1


def _print_result(result: ExecutionResult) -> None:
    """Render program output and metrics with Rich.

    Example:
        ```python
        _print_result(result)
        ```
    """
    border = "yellow" if result.timed_out else ("green" if result.exit_code == 0 else "red")
    _CONSOLE.print(Panel(Text(result.output), title="Output", border_style=border, expand=False))
    table = Table(title="Execution Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    rows: list[tuple[str, Any]] = [
        ("Timed out", result.timed_out),
        ("Real time", f"{result.real_time:.3f} s"),
        ("User time", f"{result.user_time:.3f} s"),
        ("Sys. time", f"{result.sys_time:.3f} s"),
        ("CPU share", f"{result.cpu_share:.1f} %"),
        ("Exit code", result.exit_code),
    ]
    for name, value in rows:
        table.add_row(name, str(value))
    _CONSOLE.print(table)


def _print_languages() -> None:
    """Render the default language mapping in a rich table.

    Example:
        ```python
        _print_languages()
        ```
    """
    table = Table(title="Default Language Mapping")
    table.add_column("Language", style="cyan")
    table.add_column("tio.run token", style="magenta")
    for choice, token in DEFAULT_TIO_LANGUAGES.items():
        table.add_row(choice, token)
    _CONSOLE.print(table)


def _run(args: argparse.Namespace, settings: RunnerSettings) -> int:
    """Execute the `run` subcommand and return the process exit status.

    Example:
        ```python
        code = _run(args, RunnerSettings())
        ```
    """
    token = args.language or map_language(args.lang, args.compiler)
    code = Path(args.source).read_text(encoding="utf-8")
    if args.stdin_file:
        stdin = Path(args.stdin_file).read_text(encoding="utf-8")
    else:
        stdin = args.stdin or ""
    options = RunOptions(
        language=token,
        stdin=stdin,
        timeout_ms=args.timeout_ms,
        argv=args.argv,
        cflags=args.cflags,
    )
    result = asyncio.run(run_code(code, options, settings=settings))
    _print_result(result)
    return process_status(result.exit_code)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `tior` CLI command handler.

    Example:
        ```python
        code = main(["run", "main.py", "--language", "python3"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format=_LOG_FORMAT)

    if args.command == "languages":
        _print_languages()
        return 0
    if args.command == "run":
        try:
            settings = build_settings(args)
            return _run(args, settings)
        except (TioRunnerError, ValueError, OSError) as exc:
            _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {escape(str(exc))}", border_style="red"))
            return 1

    parser.error("Unhandled command")
    return 2
