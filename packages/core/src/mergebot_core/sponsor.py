"""Final step of /integrate: push directly or hand off to a sponsor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from github import GithubException

from mergebot_core.gh.pull_request import remove_labels
from mergebot_core.markers import ready_for_sponsor_marker
from mergebot_core.outcome import Outcome

if TYPE_CHECKING:
    from mergebot_core.census import Census
    from mergebot_core.checkable import CheckablePullRequest

logger = logging.getLogger(__name__)

POST_PUSH_WARNING = (
    "Warning! The commit was pushed, but this pull request could not be closed and relabelled. "
    "Please do not integrate it again."
)


def decide_and_push(
    checkable: CheckablePullRequest,
    final_hash: str,
    census: Census,
    pinned_target: bool,
    rebase_message: str,
) -> Outcome:
    """Push ``final_hash`` if the author may, otherwise queue the PR for a sponsor.

    ``checkable.target_hash`` must have been read under the integration lock.
    """
    pr = checkable.pr

    if not census.is_committer(pr.user.login):
        head = pr.head.sha
        lines = [
            ready_for_sponsor_marker(head),
            f"Your change (at version {head}) is now ready to be sponsored by a Committer.",
        ]
        if pinned_target:
            lines.append("Note that your sponsor will make the final decision onto which target hash to integrate.")
        pr.add_to_labels("sponsor")
        logger.info("PR #%d is ready for sponsor at %s", pr.number, head)
        return Outcome.handed_off("ready-for-sponsor", lines, revision=head)

    if final_hash == checkable.target_hash:
        logger.info("PR #%d results in no changes on top of %s", pr.number, final_hash)
        return Outcome.blocked(
            "no-changes",
            ["Warning! Your commit did not result in any changes! No push attempt will be made."],
        )

    checkable.push(final_hash)
    logger.info("Pushed %s to %s for PR #%d", final_hash, checkable.target_ref, pr.number)

    lines = []
    if rebase_message.strip():
        lines += rebase_message.rstrip("\n").splitlines()
    lines += [
        f"Pushed as commit {final_hash}.",
        "",
        ":bulb: You may see a message that your pull request was closed with unmerged commits. "
        "This can be safely ignored.",
    ]
    try:
        pr.edit(state="closed")
        pr.add_to_labels("integrated")
        remove_labels(pr, "ready", "rfr")
    except GithubException as e:
        # The push stands; only the bookkeeping on the PR is incomplete.
        logger.exception("Could not close and relabel PR #%d after pushing %s: %s", pr.number, final_hash, e)
        lines += ["", POST_PUSH_WARNING]
    return Outcome.success("integrated", lines, revision=final_hash)
