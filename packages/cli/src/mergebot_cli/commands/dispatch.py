"""dispatch command: run every command in a comment body.

This is the entry point a webhook handler or CI job calls with the raw text
of a new comment. Replies are posted as the commands complete.
"""

from __future__ import annotations

import click

from mergebot_cli.bot import build_context, report
from mergebot_core.dispatch import dispatch_commit, dispatch_pull_request
from mergebot_core.gh.pull_request import get_pull


@click.command("dispatch")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request the comment was made on.")
@click.option("--commit", "commit_sha", default=None, help="Commit the comment was made on.")
@click.option("--user", "requester", required=True, help="Login of the comment author.")
@click.option(
    "--comment",
    "comment_file",
    type=click.File("r"),
    required=True,
    help="File holding the comment body, or - for stdin.",
)
@click.pass_context
def dispatch_cmd(ctx, repo: str, pr_number: int | None, commit_sha: str | None, requester: str, comment_file):
    """Run the commands found in a pull request or commit comment."""
    if (pr_number is None) == (commit_sha is None):
        raise click.UsageError("Pass exactly one of --pr or --commit.")

    text = comment_file.read()
    bot = build_context(ctx)
    target_repo = bot.gh.get_repo(repo)

    if pr_number is not None:
        pr = get_pull(target_repo, pr_number)
        outcomes = dispatch_pull_request(bot, pr, text, requester, pr.create_issue_comment)
    else:
        commit = target_repo.get_commit(commit_sha)
        outcomes = dispatch_commit(bot, target_repo, commit_sha, text, requester, commit.create_comment)

    if not outcomes:
        click.echo("No commands found.")
        return
    # Replies were already posted by the dispatcher.
    report(ctx, outcomes, requester, None)
