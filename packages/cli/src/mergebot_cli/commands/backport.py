"""backport command: run /backport on a commit."""

from __future__ import annotations

import click

from mergebot_cli.bot import build_context, report
from mergebot_core.backport import run_backport
from mergebot_core.dispatch import CommandInvocation


@click.command("backport")
@click.option("--repo", required=True, help="GitHub repository the commit lives in (owner/name).")
@click.option("--commit", "commit_sha", required=True, help="Full hash of the commit to backport.")
@click.option("--user", "requester", required=True, help="Login of the user issuing the command.")
@click.option(
    "--no-reply",
    is_flag=True,
    help="Print the reply instead of commenting on the commit.",
)
@click.argument("target")
@click.argument("branch", required=False)
@click.pass_context
def backport_cmd(ctx, repo: str, commit_sha: str, requester: str, no_reply: bool, target: str, branch: str | None):
    """Open a pull request backporting a commit to TARGET.

    TARGET is a repository (owner/name, a bare name under the same owner, or a
    URL). BRANCH defaults to the configured trunk branch.
    """
    bot = build_context(ctx)
    source_repo = bot.gh.get_repo(repo)
    args = f"{target} {branch}" if branch else target
    outcome = run_backport(bot, CommandInvocation(requester, "backport", args), source_repo, commit_sha)
    post = None if no_reply else source_repo.get_commit(commit_sha).create_comment
    report(ctx, [outcome], requester, post)
