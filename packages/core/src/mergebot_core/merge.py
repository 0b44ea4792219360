"""Bring a change up to date with the current target branch tip."""

from __future__ import annotations

import logging
from typing import TextIO

from mergebot_core.vcs.base import Author, Repository

logger = logging.getLogger(__name__)


def merge_target(
    local: Repository,
    head: str,
    tip: str,
    target_ref: str,
    writer: TextIO,
    identity: Author,
) -> str | None:
    """Replay the change at ``head`` on top of ``tip``.

    Returns ``head`` itself when it already descends from ``tip``, a new
    revision whose only parent is ``tip`` when the replay is clean, and None
    on conflicts. Conflicts are explained on ``writer`` and the working copy
    is reset to ``tip``.
    """
    if local.is_ancestor(tip, head):
        return head

    local.checkout(tip)
    if not local.merge_squash(head):
        conflicts = sorted({entry.path for entry in local.status() if entry.is_unmerged})
        local.reset(tip, hard=True)
        logger.info("Rebase of %s onto %s conflicts in %d file(s)", head, tip, len(conflicts))
        print(
            f"This PR is not up to date with the target branch `{target_ref}` and it was not possible "
            f"to rebase it automatically due to conflicts in the following files:",
            file=writer,
        )
        print(file=writer)
        for path in conflicts:
            print(f"- {path}", file=writer)
        print(file=writer)
        print(
            f"Please merge `{target_ref}` into your branch, resolve the conflicts, push the result "
            f"and issue the command again.",
            file=writer,
        )
        return None

    rebased = local.commit(f"Automatic merge of {target_ref} into {head[:7]}", identity)
    print(
        f"Your change was automatically rebased onto the latest `{target_ref}` ({tip}) without conflicts.",
        file=writer,
    )
    return rebased
