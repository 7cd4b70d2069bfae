"""history command — display review requests recorded by earlier builds."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


@click.command("history")
@click.option("--job", required=True, help="Job name used when publishing.")
@click.option("--key", default=None, help="Only show review requests for this correlation key.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of review requests to show.")
@click.pass_context
def history_cmd(ctx, job: str, key: str | None, limit: int):
    """Show the review requests each build of a job created or updated.

    Reads from the configured store (Gist or SQLite).
    """
    from rblink_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError("No store configured. Add 'store: sqlite' or 'store: gist' to .rblink.yml.")

    rows = []
    for build in reversed(store.list_builds(job)):
        for outcome in reversed(build.outcomes):
            if key is None or outcome.external_id.lower() == key.lower():
                rows.append((build, outcome))

    if not rows:
        console.print("[yellow]No review requests recorded.[/yellow]")
        return

    table = Table(title=f"Review History — {job}", show_header=True, header_style="bold cyan")
    table.add_column("Build", style="bold")
    table.add_column("Built At")
    table.add_column("Key")
    table.add_column("Review", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Author")
    table.add_column("Description", max_width=30)

    for build, outcome in rows[:limit]:
        status_style = "green" if build.succeeded else "red"
        table.add_row(
            f"[{status_style}]#{build.number}[/{status_style}]",
            build.built_at[:16].replace("T", " "),
            escape(outcome.external_id),
            str(outcome.review_id),
            str(outcome.change_number or ""),
            escape(outcome.author),
            escape(outcome.description.splitlines()[0][:40]) if outcome.description else "",
        )

    console.print(table)
