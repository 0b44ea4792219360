"""Abstract working-copy interface.

The workflows only ever talk to a Repository. GitRepository drives the git
executable; tests may substitute any object implementing this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Porcelain XY codes git uses for paths with unresolved conflicts.
_UNMERGED_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class VcsError(Exception):
    """A version-control command failed for a reason other than a conflict."""

    def __init__(self, command: str, returncode: int, output: str):
        super().__init__(f"`{command}` failed with exit code {returncode}: {output.strip()}")
        self.command = command
        self.returncode = returncode
        self.output = output


@dataclass(frozen=True)
class Author:
    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True)
class FileStatus:
    """One working-copy status entry.

    ``source_path`` is the pre-image path and ``target_path`` the post-image
    path; either is None when the file does not exist on that side.
    """

    status: str  # two-letter porcelain code, e.g. "UU"
    source_path: str | None
    target_path: str | None

    @property
    def is_unmerged(self) -> bool:
        return self.status in _UNMERGED_CODES

    @property
    def path(self) -> str:
        return self.target_path if self.target_path is not None else self.source_path


class Repository(ABC):
    """A private local working copy."""

    @abstractmethod
    def fetch(self, remote_url: str, ref: str) -> str:
        """Fetch ``ref`` from ``remote_url`` and return the fetched revision id."""

    @abstractmethod
    def checkout(self, ref: str) -> None: ...

    @abstractmethod
    def branch(self, revision: str, name: str) -> str:
        """Create branch ``name`` at ``revision`` and return its name."""

    @abstractmethod
    def head(self) -> str: ...

    @abstractmethod
    def tree(self, revision: str) -> str:
        """Return the tree id of ``revision``."""

    @abstractmethod
    def parents(self, revision: str) -> list[str]: ...

    @abstractmethod
    def message(self, revision: str) -> str: ...

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str) -> bool: ...

    @abstractmethod
    def merge_squash(self, revision: str) -> bool:
        """Stage the changes of ``revision`` onto HEAD; False on conflicts."""

    @abstractmethod
    def cherry_pick(self, revision: str) -> bool:
        """Apply the changes of ``revision`` to the index; False on conflicts."""

    @abstractmethod
    def commit(self, message: str, author: Author, committer: Author | None = None) -> str:
        """Commit the index on top of HEAD and return the new revision id."""

    @abstractmethod
    def commit_tree(self, tree_of: str, parent: str, message: str, author: Author, committer: Author) -> str:
        """Create a revision with the tree of ``tree_of`` and the single parent ``parent``."""

    @abstractmethod
    def push(
        self,
        revision: str,
        remote_url: str,
        branch: str,
        force: bool = False,
        lease: str | None = None,
    ) -> None:
        """Update ``branch`` on the remote to ``revision``.

        Without ``force`` or ``lease`` the update must be a fast-forward.
        With ``lease`` the update only happens if the remote branch is still
        at that revision.
        """

    @abstractmethod
    def reset(self, revision: str, hard: bool = True) -> None: ...

    @abstractmethod
    def status(self) -> list[FileStatus]: ...
