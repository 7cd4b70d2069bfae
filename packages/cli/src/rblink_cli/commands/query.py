"""users / groups commands — look up names to use as default reviewers and groups."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

console = Console()


def _client_or_fail(ctx):
    from rblink_cli.cli import _build_client

    client = _build_client(ctx.obj["config"])
    if client is None:
        raise click.UsageError("No Review Board URL configured. Set `url` in .rblink.yml.")
    return client


def _print_matches(kind: str, query: str, names: set[str]) -> None:
    if not names:
        console.print(f"[yellow]No {kind} matching {escape(repr(query))}.[/yellow]")
        return
    for name in sorted(names):
        console.print(f"  {escape(name)}")


@click.command("users")
@click.argument("query", default="")
@click.pass_context
def users_cmd(ctx, query: str):
    """List Review Board users whose username starts with QUERY."""
    client = _client_or_fail(ctx)
    try:
        _print_matches("users", query, client.get_users(query))
    finally:
        client.close()


@click.command("groups")
@click.argument("query", default="")
@click.pass_context
def groups_cmd(ctx, query: str):
    """List Review Board groups whose name starts with QUERY."""
    client = _client_or_fail(ctx)
    try:
        _print_matches("groups", query, client.get_groups(query))
    finally:
        client.close()
