"""Command parsing and placement gating.

A comment may carry several commands, one per line:

    /integrate
    /backport jdk17u

Each line starting with "/" becomes a CommandInvocation. Commands are only
honoured where they make sense: /integrate on pull requests, /backport on
commits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from mergebot_core.backport import run_backport
from mergebot_core.integrate import run_integrate
from mergebot_core.outcome import Outcome

if TYPE_CHECKING:
    from mergebot_core.context import BotContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandInvocation:
    requester: str
    name: str
    args: str = ""


@dataclass(frozen=True)
class CommandInfo:
    description: str
    allowed_in_pull_request: bool
    allowed_in_commit: bool


COMMANDS: dict[str, CommandInfo] = {
    "integrate": CommandInfo("performs integration of the changes in the PR", True, False),
    "backport": CommandInfo("create a backport", False, True),
}


def parse_commands(text: str, requester: str) -> list[CommandInvocation]:
    invocations = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line.startswith("/") or len(line) < 2:
            continue
        name, _, args = line[1:].partition(" ")
        invocations.append(CommandInvocation(requester=requester, name=name.lower(), args=args.strip()))
    return invocations


def _gate(invocation: CommandInvocation, on_pull_request: bool) -> Outcome | None:
    info = COMMANDS.get(invocation.name)
    if info is None:
        known = ", ".join(f"`/{name}`" for name in COMMANDS)
        return Outcome.rejected(
            "unknown-command", [f"Unknown command `/{invocation.name}` - valid commands are {known}."]
        )
    if on_pull_request and not info.allowed_in_pull_request:
        return Outcome.rejected("wrong-place", [f"The command `/{invocation.name}` can only be used on commits."])
    if not on_pull_request and not info.allowed_in_commit:
        return Outcome.rejected("wrong-place", [f"The command `/{invocation.name}` can only be used in pull requests."])
    return None


def dispatch_pull_request(
    ctx: BotContext,
    pr,
    text: str,
    requester: str,
    reply: Callable[[str], None],
) -> list[Outcome]:
    """Run every command in a pull request comment, replying once per command."""
    outcomes = []
    for invocation in parse_commands(text, requester):
        outcome = _gate(invocation, on_pull_request=True) or run_integrate(ctx, invocation, pr)
        logger.info(
            "/%s on %s by %s: %s (%s)", invocation.name, pr.html_url, requester, outcome.kind.value, outcome.reason
        )
        reply(outcome.render(requester))
        outcomes.append(outcome)
    return outcomes


def dispatch_commit(
    ctx: BotContext,
    repo,
    commit_sha: str,
    text: str,
    requester: str,
    reply: Callable[[str], None],
) -> list[Outcome]:
    """Run every command in a commit comment, replying once per command."""
    outcomes = []
    for invocation in parse_commands(text, requester):
        outcome = _gate(invocation, on_pull_request=False) or run_backport(ctx, invocation, repo, commit_sha)
        logger.info(
            "/%s on %s@%s by %s: %s (%s)",
            invocation.name,
            repo.full_name,
            commit_sha,
            requester,
            outcome.kind.value,
            outcome.reason,
        )
        reply(outcome.render(requester))
        outcomes.append(outcome)
    return outcomes
