"""Commit message format and author resolution.

Messages produced by the bot look like:

    Fix NPE in the frobnicator

    Optional free-form summary.

    Co-authored-by: Jane Doe <jane@example.org>
    Reviewed-by: alice, bob
    Backport-of: 0123456789abcdef0123456789abcdef01234567

Trailers may appear in any order; everything else after the title belongs
to the summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from mergebot_core.markers import is_hash
from mergebot_core.vcs.base import Author

if TYPE_CHECKING:
    from mergebot_core.census import Census

CO_AUTHORED_BY = "Co-authored-by: "
REVIEWED_BY = "Reviewed-by: "
BACKPORT_OF = "Backport-of: "


@dataclass
class CommitMessage:
    title: str
    summary: str = ""
    co_authors: list[Author] = field(default_factory=list)
    reviewers: list[str] = field(default_factory=list)
    original: str | None = None  # revision this commit backports

    def format(self) -> str:
        lines = [self.title]
        if self.summary:
            lines += ["", self.summary]
        trailers = [f"{CO_AUTHORED_BY}{a}" for a in self.co_authors]
        if self.reviewers:
            trailers.append(REVIEWED_BY + ", ".join(self.reviewers))
        if self.original:
            trailers.append(BACKPORT_OF + self.original)
        if trailers:
            lines += [""] + trailers
        return "\n".join(lines)


def _parse_author(text: str) -> Author | None:
    name, sep, rest = text.rpartition("<")
    if not sep or not rest.endswith(">"):
        return None
    return Author(name=name.strip(), email=rest[:-1].strip())


def _split_names(text: str) -> list[str]:
    return [name.strip() for name in text.split(",") if name.strip()]


def parse_commit_message(text: str) -> CommitMessage:
    lines = text.strip("\n").splitlines()
    if not lines:
        return CommitMessage(title="")
    message = CommitMessage(title=lines[0].strip())
    summary = []
    for line in lines[1:]:
        if line.startswith(CO_AUTHORED_BY):
            author = _parse_author(line[len(CO_AUTHORED_BY) :])
            if author is not None:
                message.co_authors.append(author)
        elif line.startswith(REVIEWED_BY):
            message.reviewers.extend(_split_names(line[len(REVIEWED_BY) :]))
        elif line.startswith(BACKPORT_OF) and is_hash(line[len(BACKPORT_OF) :].strip()):
            message.original = line[len(BACKPORT_OF) :].strip()
        else:
            summary.append(line)
    message.summary = "\n".join(summary).strip("\n")
    return message


def census_username(login: str, namespace: dict[str, str], census: Census) -> str | None:
    if login in namespace:
        return namespace[login]
    if census.contributor(login) is not None:
        return login
    return None


def resolve_author(user, namespace: dict[str, str], domain: str, census: Census) -> Author:
    """Author identity for a forge user.

    Census members get their full name and an address in the census domain;
    anyone else gets their forge display name and a noreply address.
    """
    username = census_username(user.login, namespace, census)
    contributor = census.contributor(username) if username else None
    if contributor is not None:
        return Author(name=contributor.full_name or contributor.username, email=f"{contributor.username}@{domain}")
    return Author(name=user.name or user.login, email=f"{user.login}@users.noreply.github.com")


def manual_reviewers(comments: Iterable, census: Census) -> list[str]:
    """Reviewers credited by committers through plain `Reviewed-by:` comment lines.

    Only names known to the census are kept; order of first mention is preserved.
    """
    found: list[str] = []
    for comment in comments:
        if comment.user is None or not census.is_committer(comment.user.login):
            continue
        for line in (comment.body or "").splitlines():
            line = line.strip()
            if not line.startswith(REVIEWED_BY):
                continue
            for name in _split_names(line[len(REVIEWED_BY) :]):
                username = census_username(name, census.namespace, census)
                if username and username not in found:
                    found.append(username)
    return found
