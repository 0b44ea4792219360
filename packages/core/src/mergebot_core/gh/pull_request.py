from __future__ import annotations

import logging

from github import GithubException

from mergebot_core.checks import CheckState
from mergebot_core.markers import first_backport_origin, latest_ready_for_sponsor

logger = logging.getLogger(__name__)

_PASSING_CONCLUSIONS = {"success", "neutral", "skipped"}
_STATUS_STATES = {
    "success": CheckState.SUCCESS,
    "pending": CheckState.IN_PROGRESS,
}


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def bot_comment_bodies(pr, bot_login: str) -> list[str]:
    """Bodies of the bot's own comments on the PR, oldest first."""
    return [c.body or "" for c in pr.get_issue_comments() if c.user is not None and c.user.login == bot_login]


def get_backport_origin(pr, bot_login: str) -> str | None:
    """Return the revision this PR backports, from the first backport marker the bot posted."""
    return first_backport_origin(bot_comment_bodies(pr, bot_login))


def get_ready_for_sponsor(pr, bot_login: str) -> str | None:
    """Return the head approved for sponsoring, from the bot's latest marker."""
    return latest_ready_for_sponsor(bot_comment_bodies(pr, bot_login))


def label_names(pr) -> set[str]:
    return {label.name for label in pr.get_labels()}


def remove_labels(pr, *names: str) -> None:
    """Remove labels that are present; removing an absent label is a 404 on GitHub."""
    present = label_names(pr)
    for name in names:
        if name in present:
            pr.remove_from_labels(name)


def collect_checks(repo, head_sha: str) -> dict[str, CheckState]:
    """Map check name to state for every check run and commit status on head_sha.

    Check runs win over legacy commit statuses of the same name.
    """
    commit = repo.get_commit(head_sha)
    checks: dict[str, CheckState] = {}

    for status in commit.get_combined_status().statuses:
        checks[status.context] = _STATUS_STATES.get(status.state, CheckState.FAILURE)

    for run in commit.get_check_runs():
        if run.status != "completed":
            checks[run.name] = CheckState.IN_PROGRESS
        elif run.conclusion in _PASSING_CONCLUSIONS:
            checks[run.name] = CheckState.SUCCESS
        else:
            checks[run.name] = CheckState.FAILURE

    return checks


def approved_reviewers(pr, head_sha: str, ignore_stale: bool = False) -> list[str]:
    """Logins whose latest review is an approval, in review order.

    Approvals given on an older head are stale and ignored unless
    ignore_stale is set.
    """
    latest: dict[str, object] = {}
    for review in pr.get_reviews():
        if review.user is None or review.state in ("COMMENTED", "PENDING"):
            continue
        # Later reviews replace earlier ones from the same user.
        latest.pop(review.user.login, None)
        latest[review.user.login] = review

    return [
        login
        for login, review in latest.items()
        if review.state == "APPROVED" and (ignore_stale or review.commit_id == head_sha)
    ]


def retarget_dependencies(repo, pr) -> list[int]:
    """Point open PRs based on this PR's `pr/<number>` branch at its target branch.

    Returns the numbers of the retargeted PRs.
    """
    source_branch = f"pr/{pr.number}"
    retargeted = []
    for candidate in repo.get_pulls(state="open", base=source_branch):
        try:
            candidate.edit(base=pr.base.ref)
            candidate.create_issue_comment(
                f"The dependent pull request has now been integrated, and the target branch of this "
                f"pull request has been updated. This means that changes from the dependent pull "
                f"request can start to show up as belonging to this pull request, which may be "
                f"confusing for reviewers. To remedy this situation, simply merge the latest changes "
                f"from the new target branch into this pull request by running commands similar to "
                f"these in the local repository for your personal fork:\n\n"
                f"```bash\n"
                f"git checkout {candidate.head.ref}\n"
                f"git fetch {repo.html_url} {pr.base.ref}\n"
                f"git merge FETCH_HEAD\n"
                f"# if there are conflicts, follow the instructions given by git merge\n"
                f"git commit -m \"Merge {pr.base.ref}\"\n"
                f"git push\n"
                f"```"
            )
            retargeted.append(candidate.number)
        except GithubException as e:
            logger.warning("Could not retarget #%d after integrating #%d: %s", candidate.number, pr.number, e)
    return retargeted
