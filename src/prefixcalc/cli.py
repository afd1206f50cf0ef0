"""Command-line interface for prefixcalc."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from prefixcalc import __version__


@click.group()
@click.version_option(version=__version__, prog_name="prefixcalc")
def main() -> None:
    """prefixcalc -- evaluate prefix-call formulas such as SUM(1,DIF(5,2)).

    Functions: SUM, DIF, MUL, DIV.  Pass formulas starting with "-" after
    a "--" separator.
    """


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

_project_option = click.option(
    "--project",
    "directory",
    type=click.Path(file_okay=False),
    default=".",
    help="Project directory (events are logged if it holds prefixcalc.yaml).",
)


def _open_project(directory: str) -> dict[str, Any]:
    """Load the project config and attach the event sink if a project exists."""
    from prefixcalc.logging.events import reset_project_dir, set_project_dir
    from prefixcalc.project import CONFIG_FILENAME, load_project_config

    project_dir = Path(directory)
    try:
        config = load_project_config(project_dir)
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))
    precision = config.get("output_precision")
    if precision is not None:
        try:
            config["output_precision"] = int(precision)
        except (TypeError, ValueError):
            raise click.ClickException(f"output_precision must be an integer, got {precision!r}")

    if (project_dir / CONFIG_FILENAME).exists():
        set_project_dir(project_dir)
    else:
        reset_project_dir()
    return config


def _echo_record(record: dict[str, Any], precision: int | None) -> None:
    from prefixcalc.service import format_value

    if record["status"] == "ok":
        click.echo(f"Result: {format_value(record['value'], precision)}")
    else:
        click.echo(f"Error: {record['error']}", err=True)


# ---------------------------------------------------------------------------
# Eval
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output the result record as JSON.")
@_project_option
def eval_cmd(formula: str, as_json: bool, directory: str) -> None:
    """Evaluate FORMULA and print the result."""
    from prefixcalc.service import evaluate_and_emit, to_json

    config = _open_project(directory)
    record = evaluate_and_emit(formula)

    if as_json:
        click.echo(to_json(record))
    else:
        _echo_record(record, config.get("output_precision"))

    if record["status"] != "ok":
        sys.exit(2)


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------


@main.command()
@_project_option
def repl(directory: str) -> None:
    """Prompt for formulas until EOF, 'quit' or 'exit'."""
    from prefixcalc.service import evaluate_and_emit

    config = _open_project(directory)
    precision = config.get("output_precision")

    while True:
        try:
            formula = click.prompt("formula", prompt_suffix="> ")
        except (click.Abort, EOFError):
            click.echo()
            break
        if formula.strip().lower() in ("quit", "exit"):
            break
        _echo_record(evaluate_and_emit(formula), precision)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--workers", type=int, default=None, help="Parallel worker processes (default from config).")
@click.option("--stop-on-error/--keep-going", default=None, help="Stop at the first failing formula.")
@click.option("--json", "as_json", is_flag=True, help="Output the batch summary as JSON.")
@_project_option
def batch(file: str, workers: int | None, stop_on_error: bool | None, as_json: bool, directory: str) -> None:
    """Evaluate every formula in FILE (one per line, '#' comments allowed)."""
    from prefixcalc.batch import load_formulas, run_batch
    from prefixcalc.service import format_value, to_json

    config = _open_project(directory)
    if workers is None:
        workers = int(config.get("batch_max_workers") or 1)
    if stop_on_error is None:
        stop_on_error = bool(config.get("batch_stop_on_error"))

    summary = run_batch(load_formulas(Path(file)), max_workers=workers, stop_on_error=stop_on_error)

    if as_json:
        click.echo(to_json(summary))
    else:
        precision = config.get("output_precision")
        for r in summary["results"]:
            if r["status"] == "ok":
                click.echo(f"  {r['formula']} = {format_value(r['value'], precision)}")
            else:
                click.echo(f"  {r['formula']} FAILED: {r['error']}")
        click.echo(f"\nTotal: {summary['total']}  OK: {summary['ok']}  Failed: {summary['failed']}")

    if summary["failed"]:
        sys.exit(2)


# ---------------------------------------------------------------------------
# Examples
# ---------------------------------------------------------------------------


@main.command()
def examples() -> None:
    """Evaluate the built-in example formulas."""
    from prefixcalc.service import EXAMPLE_FORMULAS, evaluate_record, format_value

    for i, formula in enumerate(EXAMPLE_FORMULAS):
        if i:
            click.echo("")
        record = evaluate_record(formula)
        click.echo(f"Input Formula: {formula}")
        if record["status"] == "ok":
            click.echo(f"Calculated Result: {format_value(record['value'])}")
        else:
            click.echo(f"Error evaluating formula: {record['error']}")


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(file_okay=False))
def init(directory: str) -> None:
    """Scaffold a new project at DIRECTORY."""
    from prefixcalc.project import scaffold_project

    try:
        result = scaffold_project(Path(directory))
    except FileExistsError as e:
        raise click.ClickException(str(e))
    click.echo(f"Created project at {result}")


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


@main.command()
@_project_option
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--batch", "batch_id", default=None, help="Filter by batch id.")
@click.option("--limit", default=50, type=click.IntRange(min=1), show_default=True, help="Maximum events to show.")
@click.option("--purge", is_flag=True, help="Delete events older than logging_max_days first.")
@click.option("--json", "as_json", is_flag=True, help="Output events as JSON.")
def logs(
    directory: str,
    level: str | None,
    event_type: str | None,
    batch_id: str | None,
    limit: int,
    purge: bool,
    as_json: bool,
) -> None:
    """Show recent events, newest first."""
    from prefixcalc.logging.sink import EventSink
    from prefixcalc.project import CONFIG_FILENAME, load_project_config

    project_dir = Path(directory)
    if not (project_dir / CONFIG_FILENAME).exists():
        raise click.ClickException(f"Not a prefixcalc project: {project_dir}")
    try:
        config = load_project_config(project_dir)
    except ValueError as e:
        raise click.ClickException(str(e))
    sink = EventSink(project_dir, tail_bytes=config.get("logging_tail_bytes"))

    if purge:
        max_days = config.get("logging_max_days")
        if max_days is None:
            raise click.ClickException("--purge requires logging_max_days in prefixcalc.yaml")
        deleted = sink.purge_old_logs(int(max_days))
        click.echo(f"Purged {deleted} batch log(s) older than {max_days} days")

    events = sink.read_global(level=level, event_type=event_type, batch_id=batch_id, limit=limit)

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return
    if not events:
        click.echo("No events.")
        return
    for e in events:
        code = f" [{e['error_code']}]" if e.get("error_code") else ""
        click.echo(f"{e.get('ts', '')}  {e.get('level', ''):<7}  {e.get('event_type', '')}{code}  {e.get('message', '')}")
