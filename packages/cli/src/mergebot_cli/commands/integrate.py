"""integrate command: run /integrate on a pull request."""

from __future__ import annotations

import click

from mergebot_cli.bot import build_context, report
from mergebot_core.dispatch import CommandInvocation
from mergebot_core.gh.pull_request import get_pull
from mergebot_core.integrate import run_integrate


@click.command("integrate")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--user", "requester", required=True, help="Login of the user issuing the command.")
@click.option(
    "--hash",
    "pinned",
    default=None,
    help="Full hash the target branch is expected to be at.",
)
@click.option(
    "--no-reply",
    is_flag=True,
    help="Print the reply instead of commenting on the pull request.",
)
@click.pass_context
def integrate_cmd(ctx, repo: str, pr_number: int, requester: str, pinned: str | None, no_reply: bool):
    """Integrate a pull request into its target branch.

    Acts exactly as if REQUESTER had commented `/integrate [HASH]` on the PR.
    """
    bot = build_context(ctx)
    pr = get_pull(bot.gh.get_repo(repo), pr_number)
    outcome = run_integrate(bot, CommandInvocation(requester, "integrate", pinned or ""), pr)
    report(ctx, [outcome], requester, None if no_reply else pr.create_issue_comment)
