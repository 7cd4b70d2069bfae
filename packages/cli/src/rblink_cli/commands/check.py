"""check command — validate the publisher configuration."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


@click.command("check")
@click.option("--offline", is_flag=True, help="Skip checks that need the Review Board server.")
@click.pass_context
def check_cmd(ctx, offline: bool):
    """Validate .rblink.yml before wiring rblink into CI.

    Checks the correlation key pattern, the staleness window, the post-review
    executable, and (unless --offline) that every default reviewer and group
    exists in Review Board. Exits non-zero when an error is found.
    """
    from rblink_cli.cli import _build_client
    from rblink_core.validation import validate_config

    config = ctx.obj["config"]
    client = None if offline else _build_client(config)
    try:
        problems = validate_config(config, client=client)
    finally:
        if client is not None:
            client.close()

    if not problems:
        console.print("[green]Configuration is valid.[/green]")
        return

    table = Table(title="Configuration problems", show_header=True, header_style="bold cyan")
    table.add_column("Level", width=8)
    table.add_column("Setting", width=26)
    table.add_column("Problem")
    for p in problems:
        style = "red" if p.level == "error" else "yellow"
        table.add_row(f"[{style}]{p.level}[/{style}]", p.field, escape(p.message))
    console.print(table)

    if any(p.level == "error" for p in problems):
        ctx.exit(1)
