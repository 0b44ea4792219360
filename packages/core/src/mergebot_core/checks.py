"""Required status check validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping


class CheckState(str, Enum):
    SUCCESS = "success"
    IN_PROGRESS = "in_progress"
    FAILURE = "failure"


class CheckStatus(str, Enum):
    PASS = "pass"
    IN_PROGRESS = "in_progress"
    FAILED = "failed"
    NOT_YET_RUN = "not_yet_run"


@dataclass(frozen=True)
class CheckVerdict:
    status: CheckStatus
    problem: str | None = None

    @property
    def passed(self) -> bool:
        return self.status is CheckStatus.PASS


def validate_check(checks: Mapping[str, CheckState], name: str, head: str) -> CheckVerdict:
    """Decide whether check ``name`` has passed on ``head``.

    ``checks`` must contain only results reported for ``head``. A missing
    entry means the check has not run on this head yet (typically because
    the head moved), which is reported with the head id rather than as a
    failure.
    """
    state = checks.get(name)
    if state is None:
        return CheckVerdict(
            CheckStatus.NOT_YET_RUN,
            f"the status check `{name}` has not been performed on commit {head} yet",
        )
    if state is CheckState.SUCCESS:
        return CheckVerdict(CheckStatus.PASS)
    if state is CheckState.IN_PROGRESS:
        return CheckVerdict(CheckStatus.IN_PROGRESS, f"the status check `{name}` is still in progress")
    return CheckVerdict(CheckStatus.FAILED, f"the status check `{name}` did not complete successfully")
