"""The /integrate workflow."""

from __future__ import annotations

import io
import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from github import GithubException

from mergebot_core.checkable import CheckablePullRequest
from mergebot_core.checks import validate_check
from mergebot_core.config import scratch_root
from mergebot_core.gh.pull_request import (
    collect_checks,
    get_backport_origin,
    get_ready_for_sponsor,
    label_names,
    retarget_dependencies,
)
from mergebot_core.gh.repository import authenticated_url
from mergebot_core.lock import IntegrationLock, lock_key
from mergebot_core.markers import is_hash
from mergebot_core.outcome import Outcome, OutcomeKind, unexpected_error
from mergebot_core.sponsor import decide_and_push
from mergebot_core.vcs.base import VcsError

if TYPE_CHECKING:
    from mergebot_core.context import BotContext
    from mergebot_core.dispatch import CommandInvocation

logger = logging.getLogger(__name__)

USAGE = "Usage: `/integrate [<hash>]` where `<hash>` is the full id the target branch is expected to be at."


def run_integrate(ctx: BotContext, invocation: CommandInvocation, pr) -> Outcome:
    """Handle `/integrate [<hash>]` on a pull request.

    Infrastructure failures anywhere in the workflow become a FAULT outcome
    after the lock (if taken) has been released.
    """
    try:
        return _run_integrate(ctx, invocation, pr)
    except (VcsError, GithubException, OSError) as e:
        logger.exception("An error occurred during integration (%s): %s", pr.html_url, e)
        return Outcome.fault("unexpected-error", unexpected_error("integration"))


def _run_integrate(ctx: BotContext, invocation: CommandInvocation, pr) -> Outcome:
    denial = _check_author(ctx, invocation, pr)
    if denial is not None:
        logger.info("Rejected /integrate by %s on %s: not the author", invocation.requester, pr.html_url)
        return denial

    pinned = invocation.args.strip().lower()
    if pinned and not is_hash(pinned):
        return Outcome.rejected("usage", [USAGE])

    check_name = ctx.config["check_name"]
    head = pr.head.sha
    verdict = validate_check(collect_checks(pr.base.repo, head), check_name, head)
    if not verdict.passed:
        return Outcome.blocked(
            f"check-{verdict.status.value}",
            [f"Your integration request cannot be fulfilled at this time, as {verdict.problem}."],
        )

    if "ready" not in label_names(pr):
        return Outcome.blocked("not-ready", ["This PR has not yet been marked as ready for integration."])

    repo = pr.base.repo
    key = lock_key(repo.full_name, pr.number)
    with IntegrationLock(ctx.lock_store, key, ctx.lock_ttl, invocation.requester) as lock:
        if not lock.locked:
            logger.error("Unable to acquire the integration lock for %s", pr.html_url)
            return Outcome.fault(
                "lock-unavailable",
                [
                    "Unable to acquire the integration lock; aborting integration. "
                    "The error has been logged and will be investigated."
                ],
            )
        # Everything below must see the state as of now, not as of the command.
        outcome = _integrate_locked(ctx, repo.get_pull(pr.number), pinned)

    # Cleanup outside of the integration lock
    if outcome.kind is OutcomeKind.SUCCESS:
        try:
            retargeted = retarget_dependencies(repo, pr)
        except GithubException as e:
            logger.exception("Could not retarget pull requests depending on %s: %s", pr.html_url, e)
            outcome.lines += ["", "Warning! Pull requests based on this one could not be retargeted."]
        else:
            if retargeted:
                logger.info("Retargeted %s after integrating %s", retargeted, pr.html_url)
    return outcome


def _check_author(ctx: BotContext, invocation: CommandInvocation, pr) -> Outcome | None:
    author = pr.user.login
    if invocation.requester == author:
        return None
    message = f"Only the author (@{author}) is allowed to issue the `integrate` command."
    # If the requester may sponsor this change, suggest that command instead.
    if ctx.census.is_committer(invocation.requester) and get_ready_for_sponsor(pr, ctx.bot_login):
        message += (
            " As this PR is ready to be sponsored, and you are an eligible sponsor, "
            "did you mean to issue the `/sponsor` command?"
        )
    return Outcome.rejected("not-author", [message])


def _integrate_locked(ctx: BotContext, pr, pinned: str) -> Outcome:
    workdir = Path(tempfile.mkdtemp(prefix=f"integrate-{pr.number}-", dir=scratch_root(ctx.config)))
    try:
        local = ctx.repo_factory(workdir)
        checkable = CheckablePullRequest(
            pr,
            local,
            ctx.census,
            remote_url=authenticated_url(pr.base.repo.clone_url, ctx.token),
            identity=ctx.identity,
            ignore_stale_reviews=ctx.config.get("ignore_stale_reviews", False),
        )
        checkable.fetch()

        if pinned and checkable.target_hash != pinned:
            return Outcome.blocked(
                "target-moved",
                [
                    f"The head of the target branch is no longer at the requested hash {pinned} "
                    f"- it has moved to {checkable.target_hash}. Aborting integration."
                ],
            )

        rebase_message = io.StringIO()
        rebased = checkable.merge_target(rebase_message)
        if rebased is None:
            return Outcome.blocked("merge-conflict", rebase_message.getvalue().rstrip("\n").splitlines())

        original = get_backport_origin(pr, ctx.bot_login)
        local_hash = checkable.commit(rebased, ctx.census.namespace, ctx.census.domain, None, original)

        if local_hash != checkable.target_hash:
            issues = checkable.execute_checks(local_hash, ctx.final_check)
            if issues:
                return Outcome.blocked(
                    "final-check-failed",
                    [
                        "Your integration request cannot be fulfilled at this time, as your changes "
                        f"failed the final {ctx.config['check_name']}:"
                    ]
                    + [f" * {issue}" for issue in issues],
                )

        return decide_and_push(checkable, local_hash, ctx.census, bool(pinned), rebase_message.getvalue())
    finally:
        shutil.rmtree(workdir, ignore_errors=True)
