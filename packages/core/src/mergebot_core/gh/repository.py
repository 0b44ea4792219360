"""Repository-level forge helpers used by /backport."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit, urlunsplit

from github import GithubException, UnknownObjectException

logger = logging.getLogger(__name__)


def find_repository(gh, full_name: str):
    """Return the repository, or None if it does not exist or is not visible."""
    try:
        return gh.get_repo(full_name)
    except UnknownObjectException:
        return None


def has_branch(repo, name: str) -> bool:
    try:
        repo.get_branch(name)
    except GithubException as e:
        if e.status == 404:
            return False
        raise
    return True


def writable_fork(gh, repo):
    """Return the bot's fork of repo, creating it if needed.

    GitHub answers a fork request for an existing fork with that fork.
    """
    fork = gh.get_user().create_fork(repo)
    logger.debug("Using fork %s of %s", fork.full_name, repo.full_name)
    return fork


def authenticated_url(clone_url: str, token: str | None) -> str:
    """Embed the token in an https clone URL so git can push without prompting."""
    if not token:
        return clone_url
    parts = urlsplit(clone_url)
    return urlunsplit(parts._replace(netloc=f"x-access-token:{token}@{parts.hostname}"))


def create_pull_from_fork(target_repo, fork, branch: str, base: str, title: str, body: str):
    return target_repo.create_pull(
        title=title,
        body=body,
        base=base,
        head=f"{fork.owner.login}:{branch}",
        maintainer_can_modify=True,
    )
