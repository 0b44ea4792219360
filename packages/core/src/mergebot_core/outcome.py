"""Tagged results passed between workflow stages.

A stage returns None to let the workflow continue, or an Outcome to stop it.
The kind tells the caller how to treat the result without inspecting
exception types:

    SUCCESS     the requested operation was carried out
    HANDED_OFF  valid terminal state awaiting another actor (sponsor)
    REJECTED    malformed input or missing permission; nothing mutated
    BLOCKED     business rule said no (check, conflict, no-op push)
    FAULT       infrastructure failure; logged for operators, retry invited
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    HANDED_OFF = "handed_off"
    REJECTED = "rejected"
    BLOCKED = "blocked"
    FAULT = "fault"


@dataclass
class Outcome:
    kind: OutcomeKind
    reason: str  # short machine-readable code, e.g. "no-changes"
    lines: list[str] = field(default_factory=list)
    state: str | None = None  # workflow state reached, where the workflow tracks one
    revision: str | None = None
    url: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.HANDED_OFF)

    def render(self, requester: str) -> str:
        """Reply text, addressed to the requester."""
        text = "\n".join(self.lines)
        return f"@{requester} {text}" if text else f"@{requester}"

    @classmethod
    def success(cls, reason: str, lines: list[str], **kwargs) -> Outcome:
        return cls(OutcomeKind.SUCCESS, reason, lines, **kwargs)

    @classmethod
    def handed_off(cls, reason: str, lines: list[str], **kwargs) -> Outcome:
        return cls(OutcomeKind.HANDED_OFF, reason, lines, **kwargs)

    @classmethod
    def rejected(cls, reason: str, lines: list[str], **kwargs) -> Outcome:
        return cls(OutcomeKind.REJECTED, reason, lines, **kwargs)

    @classmethod
    def blocked(cls, reason: str, lines: list[str], **kwargs) -> Outcome:
        return cls(OutcomeKind.BLOCKED, reason, lines, **kwargs)

    @classmethod
    def fault(cls, reason: str, lines: list[str], **kwargs) -> Outcome:
        return cls(OutcomeKind.FAULT, reason, lines, **kwargs)


def unexpected_error(operation: str) -> list[str]:
    """Deliberately vague reply for infrastructure faults."""
    return [
        f"An unexpected error occurred during {operation}. No push attempt will be made. "
        "The error has been logged and will be investigated. It is possible that this error "
        "is caused by a transient issue; feel free to retry the operation."
    ]
