"""CLI entry point for mergebot.

Commands:
  integrate   run /integrate on a pull request
  backport    run /backport on a commit
  dispatch    run every command found in a comment body
  locks       show the integration locks currently stored
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from mergebot_cli.commands.backport import backport_cmd
from mergebot_cli.commands.dispatch import dispatch_cmd
from mergebot_cli.commands.integrate import integrate_cmd
from mergebot_cli.commands.locks import locks_cmd

console = Console()


def _build_store(config: dict):
    """Pick the lock store named by `lock_store`.

    `memory` only guards a single process; every other value gets the
    SQLite file at `store_path`, which concurrent bot runs can share.
    """
    store_type = config.get("lock_store", "sqlite")

    if store_type == "memory":
        from mergebot_store.memory import MemoryLockStore

        return MemoryLockStore()

    if store_type != "sqlite":
        console.print(f"[yellow]Unknown lock_store {store_type!r}. Falling back to sqlite.[/yellow]")

    from mergebot_store.sqlite import SQLiteLockStore

    return SQLiteLockStore(db_path=config.get("store_path", ".mergebot.db"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("mergebot"),
    prog_name="mergebot",
)
@click.option(
    "--config",
    "config_path",
    default=".mergebot.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="MERGEBOT_CONFIG",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def main(ctx: click.Context, config_path: str, log_level: str):
    """Integrate and backport pull requests on command."""
    from mergebot_cli.auth import resolve_github_token
    from mergebot_core.config import load_config

    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(integrate_cmd)
main.add_command(backport_cmd)
main.add_command(dispatch_cmd)
main.add_command(locks_cmd)
