"""version-diff CLI application -- Typer-based interface to the diff engine.

Provides commands for structural schema diffs, attributed text diffs and
comparisons between stored versions.  Human-readable output goes to
*stderr* via Rich; machine-readable JSON goes to *stdout* in ``--json``
mode so that pipelines can compose cleanly.

Exit codes: 0 on success (including "no changes"), 3 when the inputs cannot
be read or are invalid.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.markup import escape

from diff_cli.display import display_diff_blocks, display_schema_changes
from diff_engine.config import Settings, load_settings
from diff_engine.diff.structural_diff import compare_schemas
from diff_engine.diff.text_diff import DiffInputTooLargeError, compute_diff_blocks, compute_diff_stats
from diff_engine.models.diff import EditorIdentity
from diff_engine.models.schema import NormalizedSchema
from diff_engine.serialization import serialize_blocks, serialize_changes
from diff_engine.telemetry.json_formatter import configure_logging
from diff_engine.versioning import SchemaVersion, VersionNotFoundError, compare_versions

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="version-diff",
    help="Version diff engine - structural and attributed text diffs of schema versions.",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_settings: Settings | None = None


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit structured JSON to stdout instead of human-readable output.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level override (DEBUG | INFO | WARNING | ERROR).",
        envvar="VERSION_DIFF_LOG_LEVEL",
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _settings  # noqa: PLW0603
    _json_output = json_mode
    overrides: dict[str, Any] = {}
    if log_level is not None:
        overrides["log_level"] = log_level
    try:
        _settings = load_settings(**overrides)
    except ValidationError as exc:
        console.print(f"[red]Invalid settings: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc
    configure_logging(_settings)


def _get_settings() -> Settings:
    return _settings if _settings is not None else load_settings()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Failed to read {path}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc


def _load_json(path: Path) -> Any:
    raw = _read_text(path)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON in {path}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc


def _load_schema(path: Path) -> NormalizedSchema:
    data = _load_json(path)
    try:
        return NormalizedSchema.model_validate(data)
    except ValidationError as exc:
        console.print(f"[red]Invalid schema in {path}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc


# ---------------------------------------------------------------------------
# schema
# ---------------------------------------------------------------------------


@app.command()
def schema(
    old_path: Path = typer.Argument(..., help="Normalized schema JSON of the old version.", dir_okay=False),
    new_path: Path = typer.Argument(..., help="Normalized schema JSON of the new version.", dir_okay=False),
) -> None:
    """Structural diff of two normalized schema snapshots."""
    old = _load_schema(old_path)
    new = _load_schema(new_path)

    changes = compare_schemas(old, new)

    if _json_output:
        sys.stdout.write(serialize_changes(changes) + "\n")
    else:
        display_schema_changes(console, changes)


# ---------------------------------------------------------------------------
# text
# ---------------------------------------------------------------------------


@app.command()
def text(
    old_path: Path = typer.Argument(..., help="Raw schema text of the old version.", dir_okay=False),
    new_path: Path = typer.Argument(..., help="Raw schema text of the new version.", dir_okay=False),
    user_id: str = typer.Option(..., "--user-id", help="Id of the author of the new version."),
    username: str = typer.Option("", "--username", help="Display name of the author of the new version."),
    merge_gap: int | None = typer.Option(
        None,
        "--merge-gap",
        min=0,
        help="Unchanged lines allowed between merged blocks (defaults to settings).",
    ),
) -> None:
    """Line diff of two raw schema texts, attributed to one author."""
    settings = _get_settings()
    try:
        editor = EditorIdentity(user_id=user_id, username=username)
    except ValidationError as exc:
        console.print(f"[red]Invalid author: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc
    old_text = _read_text(old_path)
    new_text = _read_text(new_path)

    try:
        blocks = compute_diff_blocks(
            old_text,
            new_text,
            editor.user_id,
            editor.username,
            merge_gap=settings.merge_gap if merge_gap is None else merge_gap,
            max_lines=settings.max_diff_lines,
        )
    except ValueError as exc:
        console.print(f"[red]Cannot diff: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc
    stats = compute_diff_stats(blocks)

    if _json_output:
        payload = {
            "blocks": json.loads(serialize_blocks(blocks)),
            "stats": stats.model_dump(),
        }
        sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    else:
        display_diff_blocks(console, blocks, stats)


# ---------------------------------------------------------------------------
# versions
# ---------------------------------------------------------------------------


@app.command()
def versions(
    history_path: Path = typer.Argument(..., help="JSON list of saved schema versions.", dir_okay=False),
    from_version: int = typer.Option(..., "--from", help="Base version number."),
    to_version: int = typer.Option(..., "--to", help="Target version number."),
) -> None:
    """Compare two saved versions: structural changes plus text blocks."""
    data = _load_json(history_path)
    try:
        history = TypeAdapter(list[SchemaVersion]).validate_python(data)
    except ValidationError as exc:
        console.print(f"[red]Invalid version history in {history_path}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc

    try:
        comparison = compare_versions(history, from_version, to_version, settings=_get_settings())
    except VersionNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc
    except DiffInputTooLargeError as exc:
        console.print(f"[red]Cannot diff: {escape(str(exc))}[/red]")
        raise typer.Exit(code=3) from exc

    if _json_output:
        sys.stdout.write(json.dumps(comparison.model_dump(mode="json", by_alias=True), indent=2, sort_keys=True) + "\n")
        return

    console.print(f"[bold]Version {from_version} -> {to_version}[/bold]")
    display_schema_changes(console, comparison.changes)
    display_diff_blocks(console, comparison.blocks, comparison.stats)
