"""The /backport workflow.

    PERMISSION_CHECK → ARGS_PARSE → REPO_RESOLVE → BRANCH_RESOLVE →
    FORK_MATERIALIZE → FETCH → BRANCH_CREATE → CHERRY_PICK →
    CONFLICT_REPORTED | REQUEST_OPENED

Any stage can end the workflow as REJECTED. The outcome records the state
the workflow stopped in.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from github import GithubException

from mergebot_core.commit import parse_commit_message
from mergebot_core.config import scratch_root
from mergebot_core.gh.repository import (
    authenticated_url,
    create_pull_from_fork,
    find_repository,
    has_branch,
    writable_fork,
)
from mergebot_core.markers import backport_marker
from mergebot_core.outcome import Outcome, unexpected_error
from mergebot_core.vcs.base import VcsError

if TYPE_CHECKING:
    from mergebot_core.census import Census
    from mergebot_core.context import BotContext
    from mergebot_core.dispatch import CommandInvocation
    from mergebot_core.vcs.base import Repository

logger = logging.getLogger(__name__)

USAGE = "Usage: `/backport <repository> [<branch>]`"


class BackportState(str, Enum):
    PERMISSION_CHECK = "PERMISSION_CHECK"
    ARGS_PARSE = "ARGS_PARSE"
    REPO_RESOLVE = "REPO_RESOLVE"
    BRANCH_RESOLVE = "BRANCH_RESOLVE"
    FORK_MATERIALIZE = "FORK_MATERIALIZE"
    FETCH = "FETCH"
    BRANCH_CREATE = "BRANCH_CREATE"
    CHERRY_PICK = "CHERRY_PICK"
    CONFLICT_REPORTED = "CONFLICT_REPORTED"
    REQUEST_OPENED = "REQUEST_OPENED"


def resolve_repository_name(argument: str, current_repo: str, forge_host: str) -> str:
    """Turn a repository argument into an owner/name slug.

    Accepts URLs and host-qualified names. A bare name other than the
    current repository is assumed to live under the current owner.
    """
    name = argument.replace("http://", "").replace("https://", "").replace(f"{forge_host}/", "")
    name = name.rstrip("/")
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if name != current_repo and "/" not in name:
        owner = current_repo.split("/")[0]
        name = f"{owner}/{name}"
    return name


def format_reviewers(names: list[str]) -> str:
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " and " + names[-1]


def format_date(moment: datetime) -> str:
    """Day-month-year without zero padding, e.g. "3 Feb 2020"."""
    return f"{moment.day} {moment.strftime('%b %Y')}"


def reviewer_links(usernames: list[str], census: Census, census_url: str | None) -> list[str]:
    links = []
    for username in usernames:
        link = f"[{username}]({census_url.format(username=username)})" if census_url else username
        contributor = census.contributor(username)
        if contributor is not None and contributor.full_name:
            links.append(f"{contributor.full_name} ({link})")
        else:
            links.append(link)
    return links


def backport_description(
    abbrev: str,
    commit_url: str,
    requester: str,
    author_name: str,
    committed: datetime,
    reviewers: list[str],
    original: str,
    bot_name: str,
) -> str:
    info = f"The commit being backported was authored by {author_name} on {format_date(committed)}"
    if reviewers:
        info += f" and was reviewed by {format_reviewers(reviewers)}."
    else:
        info += " and had no reviewers."
    lines = [
        "Hi all,",
        "",
        f"this is an _automatically_ generated pull request containing a backport of "
        f"[{abbrev}]({commit_url}) as requested by @{requester}",
        "",
        info,
        "",
        "Thanks,",
        bot_name,
        "",
        backport_marker(original),
    ]
    return "\n".join(lines)


def conflict_report(
    abbrev: str,
    revision: str,
    repo_name: str,
    repo_url: str,
    source_url: str,
    branch_name: str,
    paths: list[str],
) -> list[str]:
    lines = [
        f":warning: could not backport `{abbrev}` to [{repo_name}]({repo_url}) "
        "due to conflicts in the following files:",
        "",
    ]
    lines += [f"- {path}" for path in paths]
    lines += [
        "",
        f"To manually resolve these conflicts run the following commands in your personal fork of "
        f"[{repo_name}]({repo_url}):",
        "",
        "```",
        f"$ git checkout -b {branch_name}",
        f"$ git fetch {source_url} {revision}",
        f"$ git cherry-pick --no-commit {revision}",
        "$ # Resolve conflicts",
        "$ git add files/with/resolved/conflicts",
        f"$ git commit -m 'Backport {revision}'",
        "```",
        "",
        f"Once you have resolved the conflicts as explained above continue with creating a pull request "
        f'towards the [{repo_name}]({repo_url}) with the title "Backport {revision}".',
    ]
    return lines


def _contributors_link(config: dict) -> str:
    if config.get("census_url"):
        return f"[contributors]({config['census_url'].format(username='').rstrip('#')})"
    return "contributors"


def _backport_branch(config: dict, fork, abbrev: str) -> tuple[str | None, bool]:
    """Pick the fork branch name for this attempt under the configured policy.

    Returns (name, force). name is None when the policy forbids reusing an
    existing branch.
    """
    base = f"{config['backport_branch_prefix']}{abbrev}"
    policy = config["backport_branch_policy"]
    if not has_branch(fork, base):
        return base, False
    if policy == "overwrite":
        return base, True
    if policy == "fail":
        return None, False
    suffix = 2
    while has_branch(fork, f"{base}-{suffix}"):
        suffix += 1
    return f"{base}-{suffix}", False


def run_backport(ctx: BotContext, invocation: CommandInvocation, source_repo, commit_sha: str) -> Outcome:
    """Handle `/backport <repository> [<branch>]` on a commit of source_repo."""
    state = BackportState.PERMISSION_CHECK
    if ctx.census.contributor_for_login(invocation.requester) is None:
        logger.info("Rejected /backport by %s: not a contributor", invocation.requester)
        return Outcome.rejected(
            "not-contributor",
            [f"only {_contributors_link(ctx.config)} can use the `/backport` command"],
            state=state.value,
        )

    state = BackportState.ARGS_PARSE
    parts = invocation.args.split()
    if not parts or len(parts) > 2:
        return Outcome.rejected("usage", [USAGE], state=state.value)

    repo_name = resolve_repository_name(parts[0], source_repo.full_name, ctx.config["forge_host"])
    workdir = None
    try:
        state = BackportState.REPO_RESOLVE
        target_repo = find_repository(ctx.gh, repo_name)
        if target_repo is None:
            return Outcome.rejected(
                "unknown-repository",
                [f"the target repository `{repo_name}` does not exist"],
                state=state.value,
            )

        state = BackportState.BRANCH_RESOLVE
        branch = parts[1] if len(parts) == 2 else ctx.config["trunk_branch"]
        if not has_branch(target_repo, branch):
            return Outcome.rejected(
                "unknown-branch",
                [f"the target branch `{branch}` does not exist"],
                state=state.value,
            )

        state = BackportState.FORK_MATERIALIZE
        source_commit = source_repo.get_commit(commit_sha)
        revision = source_commit.sha
        abbrev = revision[:7]
        fork = writable_fork(ctx.gh, target_repo)
        branch_name, force = _backport_branch(ctx.config, fork, abbrev)
        if branch_name is None:
            existing = f"{ctx.config['backport_branch_prefix']}{abbrev}"
            return Outcome.blocked(
                "branch-exists",
                [
                    f"a backport branch `{existing}` already exists in [{fork.full_name}]({fork.html_url}); "
                    "delete it or close the earlier backport pull request before trying again"
                ],
                state=state.value,
            )
        workdir = Path(tempfile.mkdtemp(prefix=f"backport-{abbrev}-", dir=scratch_root(ctx.config)))
        local = ctx.repo_factory(workdir)

        state = BackportState.FETCH
        fetched = local.fetch(authenticated_url(source_repo.clone_url, ctx.token), revision)
        tip = local.fetch(authenticated_url(target_repo.clone_url, ctx.token), f"refs/heads/{branch}")

        state = BackportState.BRANCH_CREATE
        local.branch(tip, branch_name)
        local.checkout(branch_name)

        state = BackportState.CHERRY_PICK
        if not local.cherry_pick(fetched):
            return _report_conflict(local, tip, revision, source_repo, target_repo, branch_name)

        backport_hash = local.commit(f"Backport {revision}", ctx.identity)
        local.push(backport_hash, authenticated_url(fork.clone_url, ctx.token), branch_name, force=force)
        logger.info("Pushed backport of %s to %s:%s", revision, fork.full_name, branch_name)

        message = parse_commit_message(source_commit.commit.message)
        body = backport_description(
            abbrev=abbrev,
            commit_url=source_commit.html_url,
            requester=invocation.requester,
            author_name=source_commit.commit.author.name,
            committed=source_commit.commit.committer.date,
            reviewers=reviewer_links(message.reviewers, ctx.census, ctx.config.get("census_url")),
            original=revision,
            bot_name=ctx.config["bot_name"],
        )
        base = branch if ctx.config["backport_pr_base"] == "branch" else ctx.config["trunk_branch"]
        pull = create_pull_from_fork(target_repo, fork, branch_name, base, f"Backport {revision}", body)
        pull.create_issue_comment(backport_marker(revision))

        return Outcome.success(
            "request-opened",
            [
                f"backport pull request [#{pull.number}]({pull.html_url}) targeting repository "
                f"[{target_repo.full_name}]({target_repo.html_url}) created successfully."
            ],
            state=BackportState.REQUEST_OPENED.value,
            revision=backport_hash,
            url=pull.html_url,
        )
    except (VcsError, GithubException, OSError) as e:
        logger.exception("An error occurred during backport of %s to %s: %s", commit_sha, repo_name, e)
        return Outcome.fault("unexpected-error", unexpected_error("backport"), state=state.value)
    finally:
        if workdir is not None:
            shutil.rmtree(workdir, ignore_errors=True)


def _report_conflict(local: Repository, tip: str, revision: str, source_repo, target_repo, branch_name: str) -> Outcome:
    paths = [entry.path for entry in local.status() if entry.is_unmerged]
    lines = conflict_report(
        revision[:7],
        revision,
        target_repo.full_name,
        target_repo.html_url,
        source_repo.html_url,
        branch_name,
        paths,
    )
    # Abandon the half-applied cherry-pick.
    local.reset(tip, hard=True)
    logger.info("Backport of %s to %s conflicts in %d file(s)", revision, target_repo.full_name, len(paths))
    return Outcome.blocked("cherry-pick-conflict", lines, state=BackportState.CONFLICT_REPORTED.value)
