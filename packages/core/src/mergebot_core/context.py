"""Shared collaborators handed to every command workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from mergebot_core.final_check import BaseFinalCheck, DefaultFinalCheck
from mergebot_core.vcs.base import Author
from mergebot_core.vcs.git import GitRepository

if TYPE_CHECKING:
    from mergebot_core.census import Census
    from mergebot_core.vcs.base import Repository
    from mergebot_store.base import BaseLockStore


@dataclass
class BotContext:
    gh: Any  # github.Github
    census: Census
    config: dict
    lock_store: BaseLockStore
    bot_login: str
    token: str | None = None
    final_check: BaseFinalCheck | None = None
    # Builds an empty private working copy at the given path.
    repo_factory: Callable[[Path], Repository] = field(default=GitRepository.init)

    def __post_init__(self):
        if self.final_check is None:
            self.final_check = DefaultFinalCheck(min_reviewers=self.config.get("min_reviewers", 1))

    @property
    def identity(self) -> Author:
        return Author(name=self.config["bot_name"], email=self.config["bot_email"])

    @property
    def lock_ttl(self) -> timedelta:
        return timedelta(minutes=self.config.get("lock_ttl_minutes", 10))
