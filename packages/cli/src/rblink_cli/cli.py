"""CLI entry point for rblink.

Commands:
  publish  — post the changelists of a build to Review Board
  history  — display review requests recorded by earlier builds
  check    — validate the configuration against the local machine and server
  users    — look up Review Board users
  groups   — look up Review Board groups
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from rblink_cli.commands.check import check_cmd
from rblink_cli.commands.history import history_cmd
from rblink_cli.commands.publish import publish_cmd
from rblink_cli.commands.query import groups_cmd, users_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .rblink.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore  (requires gist_id and GITHUB_TOKEN)
      store: sqlite → SQLiteStore (requires store_path or uses .rblink.db)
      (default)     → NoOpStore  (no history between runs)

    This factory lives in cli.py so neither rblink_core nor rblink_store
    know about the CLI config format.
    """
    from rblink_store.noop import NoOpStore

    store_type = config.get("store", "noop")

    if store_type == "gist":
        from rblink_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print("[yellow]GistStore requires gist_id and GITHUB_TOKEN. Falling back to no store.[/yellow]")
            return NoOpStore()
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from rblink_store.sqlite import SQLiteStore

        db_path = config.get("store_path") or ".rblink.db"
        return SQLiteStore(db_path=db_path)

    return NoOpStore()


def _build_client(config: dict):
    """Return a ReviewboardClient for the configured server, or None without a URL."""
    from rblink_core.rb.api import ReviewboardClient

    if not config.get("url"):
        return None
    return ReviewboardClient(config["url"], config.get("username") or "", config.get("password") or "")


@click.group()
@click.version_option(
    version=importlib.metadata.version("rblink"),
    prog_name="rblink",
)
@click.option(
    "--config",
    "config_path",
    default=".rblink.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="RBLINK_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Keep Review Board review requests in step with submitted changelists."""
    from rblink_core.config import load_config
    from rblink_cli.auth import resolve_credentials

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)

    config = resolve_credentials(load_config(config_path))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(publish_cmd)
main.add_command(history_cmd)
main.add_command(check_cmd)
main.add_command(users_cmd)
main.add_command(groups_cmd)
