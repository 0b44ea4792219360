"""Final review-rule check run on the composed commit before it is pushed.

All rule engines share the same algorithm:
    check() → load the candidate commit → run each rule → collect messages

Subclasses only provide the list of rules. A rule takes a Candidate and
returns zero or more human-readable failure messages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from mergebot_core.commit import CommitMessage, parse_commit_message

if TYPE_CHECKING:
    from mergebot_core.vcs.base import Repository


@dataclass(frozen=True)
class Candidate:
    revision: str
    message: CommitMessage
    raw_message: str
    parents: list[str]


Rule = Callable[[Candidate], list[str]]


class BaseFinalCheck(ABC):
    def check(self, local: Repository, revision: str) -> list[str]:
        raw = local.message(revision)
        candidate = Candidate(
            revision=revision,
            message=parse_commit_message(raw),
            raw_message=raw,
            parents=local.parents(revision),
        )
        messages: list[str] = []
        for rule in self.rules():
            messages.extend(rule(candidate))
        return messages

    @abstractmethod
    def rules(self) -> list[Rule]:
        """Return the rules to run, in reporting order."""


class DefaultFinalCheck(BaseFinalCheck):
    def __init__(self, min_reviewers: int = 1):
        self.min_reviewers = min_reviewers

    def rules(self) -> list[Rule]:
        return [self._title, self._single_parent, self._reviewers]

    @staticmethod
    def _title(candidate: Candidate) -> list[str]:
        if not candidate.message.title:
            return ["The commit message does not have a title"]
        return []

    @staticmethod
    def _single_parent(candidate: Candidate) -> list[str]:
        if len(candidate.parents) != 1:
            return [f"The commit must have exactly one parent, found {len(candidate.parents)}"]
        return []

    def _reviewers(self, candidate: Candidate) -> list[str]:
        found = len(candidate.message.reviewers)
        if found < self.min_reviewers:
            return [
                f"Too few reviewers found (have {found}, need at least {self.min_reviewers})"
            ]
        return []
