"""Machine-readable markers the bot embeds in its own comments.

Grammar of every marker:

    "<!-- " <tag> " " <40 lowercase hex digits> " -->"

Markers are HTML comments so they are invisible in rendered Markdown. They
are parsed with plain string scanning: find the fixed prefix, take exactly
40 characters, require the fixed suffix. Anything else is not a marker.
"""

from __future__ import annotations

from typing import Iterable

HASH_LENGTH = 40
_HEX_DIGITS = frozenset("0123456789abcdef")
_SUFFIX = " -->"

BACKPORT = "backport"
READY_FOR_SPONSOR = "ready-for-sponsor"


def is_hash(value: str) -> bool:
    """Return True if value is a full 40-character lowercase hex revision id."""
    return len(value) == HASH_LENGTH and all(c in _HEX_DIGITS for c in value)


def render_marker(tag: str, revision: str) -> str:
    if not is_hash(revision):
        raise ValueError(f"Not a full revision id: {revision!r}")
    return f"<!-- {tag} {revision} -->"


def parse_markers(tag: str, text: str) -> list[str]:
    """Return the payload of every well-formed ``tag`` marker in text, in order."""
    prefix = f"<!-- {tag} "
    found = []
    start = text.find(prefix)
    while start != -1:
        payload_start = start + len(prefix)
        payload = text[payload_start : payload_start + HASH_LENGTH]
        suffix = text[payload_start + HASH_LENGTH : payload_start + HASH_LENGTH + len(_SUFFIX)]
        if is_hash(payload) and suffix == _SUFFIX:
            found.append(payload)
        start = text.find(prefix, payload_start)
    return found


def parse_marker(tag: str, text: str) -> str | None:
    """Return the first ``tag`` marker payload in text, or None."""
    found = parse_markers(tag, text)
    return found[0] if found else None


def backport_marker(revision: str) -> str:
    return render_marker(BACKPORT, revision)


def ready_for_sponsor_marker(revision: str) -> str:
    return render_marker(READY_FOR_SPONSOR, revision)


def first_backport_origin(bodies: Iterable[str]) -> str | None:
    """First backport marker across comment bodies given in chronological order."""
    for body in bodies:
        found = parse_marker(BACKPORT, body or "")
        if found:
            return found
    return None


def latest_ready_for_sponsor(bodies: Iterable[str]) -> str | None:
    """Most recent ready-for-sponsor marker across chronologically ordered bodies."""
    latest = None
    for body in bodies:
        found = parse_markers(READY_FOR_SPONSOR, body or "")
        if found:
            latest = found[-1]
    return latest
