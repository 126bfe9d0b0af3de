#!/usr/bin/env python3
"""
Tool Envelope CLI.

Usage:
    te run <command> [args...]              # compact output, real exit code
    te run --adapter prettier npx prettier --check .
    te run --raw <command> [args...]        # passthrough, no guard
    te run --stream <command> [args...]     # interactive, stdio inherited
    te json data.json [--schema]            # compact a JSON document
    te adapters                             # list known adapters

Options for ``te run`` go before the command; everything after the first
word of the command is passed to it untouched.
"""

from __future__ import annotations

from pathlib import Path
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

from . import __version__
from .adapters import list_adapters
from .compactor import compact_json_text, schema_json_text
from .config import get_te_config
from .errors import WRAPPER_FAILURE_EXIT, SpawnFailure, StructuredParseError
from .execution import execute, persist_record, terminate, tracker_for
from .logging_setup import setup_logging
from .tracking import TeTimer, TrackingRecord

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="te",
    help="Tool Envelope - compact, trustworthy output for wrapped shell tools",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def _configure() -> None:
    setup_logging(get_te_config())


@app.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
def run(
    command: list[str] = typer.Argument(..., help="Command and its arguments"),
    adapter: str = typer.Option(
        "generic", "-a", "--adapter", help="Adapter that knows this tool's output"
    ),
    raw: bool = typer.Option(
        False, "-r", "--raw", help="Passthrough only: skip parsing and the failure guard"
    ),
    stream: bool = typer.Option(
        False, "-s", "--stream", help="Interactive: inherit stdio, no output processing"
    ),
    depth: int | None = typer.Option(None, "-d", "--depth", help="Max nesting depth for JSON"),
    cwd: str | None = typer.Option(None, "-C", "--cwd", help="Working directory"),
) -> None:
    """Run a command and print a compact, guarded rendering of its output.

    Examples:
        te run gh api repos/owner/repo/issues
        te run -a vitest pnpm vitest run
        te run -a grep rg -n TODO src/
    """
    cfg = get_te_config()
    if depth is not None:
        cfg.max_depth = depth
    force_raw = raw or cfg.raw or not cfg.enabled

    try:
        result = execute(
            list(command),
            adapter,
            config=cfg,
            stream=stream,
            raw=force_raw,
            cwd=cwd,
        )
    except SpawnFailure as e:
        err_console.print(f"[red]\\[te] {escape(str(e))}[/red]", highlight=False)
        exit_code = WRAPPER_FAILURE_EXIT
    else:
        exit_code = result.exit_code

    terminate(exit_code)


@app.command("json")
def json_cmd(
    path: str = typer.Argument(..., help="JSON file, or - for stdin"),
    depth: int | None = typer.Option(None, "-d", "--depth", help="Max nesting depth"),
    schema: bool = typer.Option(False, "--schema", help="Show type shape instead of values"),
) -> None:
    """Compact a JSON document (values kept) or show its schema."""
    cfg = get_te_config()
    max_depth = cfg.max_depth if depth is None else depth

    with TeTimer() as timer:
        if path == "-":
            content = sys.stdin.read()
        else:
            try:
                content = Path(path).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                err_console.print(
                    f"[red]\\[te] cannot read {escape(path)}: {e.strerror}[/red]",
                    highlight=False,
                )
                raise typer.Exit(1)
        try:
            if schema:
                rendered = schema_json_text(content, max_depth)
            else:
                rendered = compact_json_text(content, max_depth, cfg.limits)
        except StructuredParseError as e:
            err_console.print(f"[red]\\[te] {escape(path)}: {escape(str(e))}[/red]", highlight=False)
            raise typer.Exit(1)

    typer.echo(rendered)

    tracker = tracker_for(cfg)
    if tracker is not None:
        record = TrackingRecord.for_output(
            original_command=f"cat {path}",
            wrapped_command=f"te json {path}",
            raw_text=content,
            filtered_text=rendered,
            raw_byte_length=len(content.encode("utf-8")),
            exec_time_ms=timer.elapsed_ms,
            exit_code=0,
            mode="schema" if schema else "structured",
        )
        persist_record(tracker, record)


@app.command()
def adapters() -> None:
    """List the adapters `te run --adapter` accepts."""
    table = Table(title="Tool Envelope adapters")
    table.add_column("name", style="cyan")
    table.add_column("description")
    for adapter in list_adapters():
        table.add_row(adapter.name, adapter.description)
    console.print(table)


@app.command()
def version() -> None:
    """Show TE version."""
    typer.echo(f"te {__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
