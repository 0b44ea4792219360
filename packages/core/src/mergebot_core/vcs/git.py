"""Repository implementation that shells out to the git executable."""

from __future__ import annotations

import logging
import os
import re
import subprocess
from pathlib import Path

from mergebot_core.vcs.base import Author, FileStatus, Repository, VcsError

logger = logging.getLogger(__name__)

# Network operations on large repositories can be slow; a hung remote must
# still fail the invocation eventually rather than hold the lock forever.
GIT_TIMEOUT_SECONDS = 600

_CREDENTIALS_RE = re.compile(r"(https?://)[^/@\s]+@")


def redact(text: str) -> str:
    """Strip credentials embedded in remote URLs before logging or reporting."""
    return _CREDENTIALS_RE.sub(r"\1***@", text)


def _identity_env(author: Author, committer: Author | None) -> dict[str, str]:
    committer = committer or author
    return {
        **os.environ,
        "GIT_AUTHOR_NAME": author.name,
        "GIT_AUTHOR_EMAIL": author.email,
        "GIT_COMMITTER_NAME": committer.name,
        "GIT_COMMITTER_EMAIL": committer.email,
    }


class GitRepository(Repository):
    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def init(cls, path: Path | str) -> GitRepository:
        """Create an empty repository at ``path`` to fetch into."""
        repo = cls(path)
        repo.path.mkdir(parents=True, exist_ok=True)
        repo._git("init", "--quiet")
        # Merges and cherry-picks refuse to run without an identity, even with --no-commit.
        repo._git("config", "user.name", "mergebot")
        repo._git("config", "user.email", "mergebot@localhost")
        repo._git("config", "commit.gpgsign", "false")
        return repo

    def _git(self, *args: str, check: bool = True, env: dict | None = None) -> subprocess.CompletedProcess:
        command = redact("git " + " ".join(args))
        logger.debug("%s (in %s)", command, self.path)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=str(self.path),
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
                env=env,
            )
        except subprocess.TimeoutExpired:
            raise VcsError(command, -1, f"timed out after {GIT_TIMEOUT_SECONDS}s")
        if check and result.returncode != 0:
            raise VcsError(command, result.returncode, redact(result.stderr or result.stdout))
        return result

    def _rev_parse(self, ref: str) -> str:
        return self._git("rev-parse", "--verify", ref).stdout.strip()

    def fetch(self, remote_url: str, ref: str) -> str:
        self._git("fetch", "--quiet", "--no-tags", remote_url, ref)
        return self._rev_parse("FETCH_HEAD^{commit}")

    def checkout(self, ref: str) -> None:
        self._git("checkout", "--quiet", ref)

    def branch(self, revision: str, name: str) -> str:
        self._git("branch", name, revision)
        return name

    def head(self) -> str:
        return self._rev_parse("HEAD")

    def tree(self, revision: str) -> str:
        return self._rev_parse(f"{revision}^{{tree}}")

    def parents(self, revision: str) -> list[str]:
        return self._git("rev-list", "--parents", "-n", "1", revision).stdout.split()[1:]

    def message(self, revision: str) -> str:
        return self._git("log", "-1", "--format=%B", revision).stdout.rstrip("\n")

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._git("merge-base", "--is-ancestor", ancestor, descendant, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise VcsError(f"git merge-base --is-ancestor {ancestor} {descendant}", result.returncode, result.stderr)

    def _apply(self, *args: str) -> bool:
        result = self._git(*args, check=False)
        if result.returncode == 0:
            return True
        if any(entry.is_unmerged for entry in self.status()):
            return False
        raise VcsError("git " + " ".join(args), result.returncode, result.stderr or result.stdout)

    def merge_squash(self, revision: str) -> bool:
        return self._apply("merge", "--squash", revision)

    def cherry_pick(self, revision: str) -> bool:
        return self._apply("cherry-pick", "--no-commit", revision)

    def commit(self, message: str, author: Author, committer: Author | None = None) -> str:
        self._git("commit", "--quiet", "--allow-empty", "-m", message, env=_identity_env(author, committer))
        return self.head()

    def commit_tree(self, tree_of: str, parent: str, message: str, author: Author, committer: Author) -> str:
        result = self._git(
            "commit-tree",
            self.tree(tree_of),
            "-p",
            parent,
            "-m",
            message,
            env=_identity_env(author, committer),
        )
        return result.stdout.strip()

    def push(
        self,
        revision: str,
        remote_url: str,
        branch: str,
        force: bool = False,
        lease: str | None = None,
    ) -> None:
        args = ["push", "--quiet"]
        if force:
            args.append("--force")
        if lease is not None:
            args.append(f"--force-with-lease=refs/heads/{branch}:{lease}")
        args += [remote_url, f"{revision}:refs/heads/{branch}"]
        self._git(*args)

    def reset(self, revision: str, hard: bool = True) -> None:
        self._git("reset", "--quiet", "--hard" if hard else "--mixed", revision)

    def status(self) -> list[FileStatus]:
        output = self._git("status", "--porcelain", "-z").stdout
        entries = output.split("\0")
        statuses = []
        i = 0
        while i < len(entries):
            entry = entries[i]
            i += 1
            if len(entry) < 4:
                continue
            code, path = entry[:2], entry[3:]
            if code[0] in ("R", "C") and i < len(entries):
                # Renames and copies are followed by the original path.
                statuses.append(FileStatus(code, entries[i], path))
                i += 1
            elif "D" in code:
                statuses.append(FileStatus(code, path, None))
            else:
                statuses.append(FileStatus(code, path, path))
        return statuses
