"""Rich output formatting for the version-diff CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout* is never
polluted with human-readable decoration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from diff_engine.models.diff import ChangeRecord, DiffBlock, DiffStats


_CHANGE_COLOURS: dict[str, str] = {
    "added": "green",
    "removed": "red",
    "modified": "yellow",
}


def _colour_for(change_type: str) -> str:
    for suffix, colour in _CHANGE_COLOURS.items():
        if change_type.endswith(suffix):
            return colour
    return "white"


def _coloured(label: str) -> str:
    colour = _colour_for(label)
    return f"[{colour}]{label}[/{colour}]"


# ---------------------------------------------------------------------------
# Structural changes
# ---------------------------------------------------------------------------


def display_schema_changes(console: Console, changes: list[ChangeRecord]) -> None:
    """Render structural change records as a table.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    changes:
        Records in comparator order.
    """
    if not changes:
        console.print("[dim]No changes detected.[/dim]")
        return

    table = Table(title=f"Schema Changes ({len(changes)})", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Change", no_wrap=True)
    table.add_column("Entity", style="bold")
    table.add_column("Details")

    for idx, change in enumerate(changes, start=1):
        table.add_row(
            str(idx),
            _coloured(change.change_type.value.replace("_", " ")),
            escape(change.entity_name),
            _describe_details(change),
        )

    console.print(table)


def _describe_details(change: ChangeRecord) -> str:
    details = change.details.model_dump(mode="json", by_alias=True)
    if details.get("diff") == "type":
        return escape(f"type {details['old_type']} -> {details['new_type']}")
    if details.get("diff") == "nullability":
        return f"nullable {details['old_nullable']} -> {details['new_nullable']}"
    if "type" in details:
        return escape(str(details["type"]))
    return ""


# ---------------------------------------------------------------------------
# Text blocks
# ---------------------------------------------------------------------------


def display_diff_blocks(console: Console, blocks: list[DiffBlock], stats: DiffStats) -> None:
    """Render text diff blocks followed by a stats panel."""
    if not blocks:
        console.print("[dim]No changes detected.[/dim]")
        return

    for block in blocks:
        label = block.change_type.value
        header = (
            f"[bold]Block {block.block_index}[/bold]  {_coloured(label)}  "
            f"lines {block.block_start}-{block.block_end}  "
            f"[dim]by {escape(block.edited_by_username or block.edited_by_user_id)}[/dim]"
        )
        console.print(header)
        if block.before_text is not None:
            for line in block.before_text.split("\n"):
                console.print(f"[red]- {escape(line)}[/red]", highlight=False)
        if block.after_text is not None:
            for line in block.after_text.split("\n"):
                console.print(f"[green]+ {escape(line)}[/green]", highlight=False)

    console.print(
        Panel(
            f"[green]+{stats.added}[/green] added  "
            f"[red]-{stats.removed}[/red] removed  "
            f"[yellow]~{stats.modified}[/yellow] modified",
            title="Diff Stats",
            border_style="blue",
        )
    )
