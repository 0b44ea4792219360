"""A pull request materialized in a private working copy."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TextIO

from mergebot_core.commit import CommitMessage, manual_reviewers, resolve_author
from mergebot_core.gh.pull_request import approved_reviewers
from mergebot_core.merge import merge_target
from mergebot_core.vcs.base import Author

if TYPE_CHECKING:
    from mergebot_core.census import Census
    from mergebot_core.final_check import BaseFinalCheck
    from mergebot_core.vcs.base import Repository

logger = logging.getLogger(__name__)


class CheckablePullRequest:
    """Wraps a PR and a working copy for rebase, commit composition and push.

    ``target_hash`` is read by fetch(), which callers run only after the
    integration lock is held; the same value then drives the rebase, the
    no-changes decision and the push lease.
    """

    def __init__(
        self,
        pr,
        local: Repository,
        census: Census,
        remote_url: str,
        identity: Author,
        ignore_stale_reviews: bool = False,
    ):
        self.pr = pr
        self.local = local
        self.census = census
        self.remote_url = remote_url
        self.identity = identity
        self.ignore_stale_reviews = ignore_stale_reviews
        self.head_hash: str | None = None
        self.target_hash: str | None = None
        self.rebased = False

    @property
    def target_ref(self) -> str:
        return self.pr.base.ref

    def fetch(self) -> None:
        self.head_hash = self.local.fetch(self.remote_url, f"refs/pull/{self.pr.number}/head")
        self.target_hash = self.local.fetch(self.remote_url, f"refs/heads/{self.target_ref}")
        logger.debug("PR #%d head %s, %s at %s", self.pr.number, self.head_hash, self.target_ref, self.target_hash)

    def merge_target(self, writer: TextIO) -> str | None:
        result = merge_target(self.local, self.head_hash, self.target_hash, self.target_ref, writer, self.identity)
        self.rebased = result is not None and result != self.head_hash
        return result

    def reviewers(self, namespace: dict[str, str]) -> list[str]:
        """Census usernames of the reviewers, approvals first.

        Reviewers credited by committers in plain `Reviewed-by:` comments
        follow the approving ones.
        """
        usernames = []
        for login in approved_reviewers(self.pr, self.pr.head.sha, self.ignore_stale_reviews):
            username = namespace.get(login, login)
            if self.census.contributor(username) is not None and username not in usernames:
                usernames.append(username)
        for username in manual_reviewers(self.pr.get_issue_comments(), self.census):
            if username not in usernames:
                usernames.append(username)
        return usernames

    def commit(
        self,
        base: str,
        namespace: dict[str, str],
        domain: str,
        co_authors: list[Author] | None = None,
        original: str | None = None,
    ) -> str:
        """Squash ``base`` into one revision on top of the target tip.

        Returns the target tip itself when ``base`` changes nothing.
        """
        if self.local.tree(base) == self.local.tree(self.target_hash):
            return self.target_hash
        message = CommitMessage(
            title=(self.pr.title or "").strip(),
            co_authors=list(co_authors or []),
            reviewers=self.reviewers(namespace),
            original=original,
        )
        author = resolve_author(self.pr.user, namespace, domain, self.census)
        return self.local.commit_tree(base, self.target_hash, message.format(), author, author)

    def execute_checks(self, revision: str, final_check: BaseFinalCheck) -> list[str]:
        return final_check.check(self.local, revision)

    def push(self, revision: str) -> None:
        """Push to the target branch.

        A rebase done here carries a lease on the tip it was based on, so a
        concurrent push by someone else makes this push fail instead of
        being overwritten. Otherwise the push must be a fast-forward.
        """
        lease = self.target_hash if self.rebased else None
        self.local.push(revision, self.remote_url, self.target_ref, lease=lease)
