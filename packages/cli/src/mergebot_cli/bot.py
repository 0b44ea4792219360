"""Glue between click commands and the workflow engine."""

from __future__ import annotations

from typing import Callable

import click
from github import Github
from rich.console import Console

from mergebot_core.census import load_census
from mergebot_core.context import BotContext
from mergebot_core.outcome import Outcome, OutcomeKind

console = Console()

_KIND_STYLE = {
    OutcomeKind.SUCCESS: "green",
    OutcomeKind.HANDED_OFF: "cyan",
    OutcomeKind.REJECTED: "yellow",
    OutcomeKind.BLOCKED: "yellow",
    OutcomeKind.FAULT: "red",
}


def build_context(ctx: click.Context) -> BotContext:
    """Assemble a BotContext from the config and store set up by the main group."""
    config = ctx.obj["config"]
    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set MERGEBOT_TOKEN or GITHUB_TOKEN, or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    try:
        census = load_census(config["census"])
    except (FileNotFoundError, ValueError) as e:
        raise click.UsageError(f"Could not load census: {e}")

    gh = Github(token)
    return BotContext(
        gh=gh,
        census=census,
        config=config,
        lock_store=ctx.obj["store"],
        bot_login=gh.get_user().login,
        token=token,
    )


def report(ctx: click.Context, outcomes: list[Outcome], requester: str, post: Callable[[str], None] | None) -> None:
    """Print each outcome, post its reply unless post is None, exit 1 on faults."""
    for outcome in outcomes:
        style = _KIND_STYLE[outcome.kind]
        body = outcome.render(requester)
        console.print(f"[{style}]{outcome.kind.value}[/{style}] ({outcome.reason})")
        console.print(body, markup=False, highlight=False)
        if post is not None:
            post(body)
    if any(o.kind is OutcomeKind.FAULT for o in outcomes):
        ctx.exit(1)
