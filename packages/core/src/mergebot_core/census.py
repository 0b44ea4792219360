"""Contributor census: who may use which command.

The census is a YAML file maintained by the project:

    domain: openjdk.org
    namespace:            # forge login -> census username
      alice-gh: alice
    contributors:
      alice: {full_name: Alice Liddell, role: committer}
      bob: {role: contributor}

Records are read-only for the bot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

ROLES = ("contributor", "committer")


@dataclass(frozen=True)
class Contributor:
    username: str
    full_name: str | None = None
    role: str = "contributor"

    @property
    def is_committer(self) -> bool:
        return self.role == "committer"


@dataclass
class Census:
    domain: str
    namespace: dict[str, str] = field(default_factory=dict)
    contributors: dict[str, Contributor] = field(default_factory=dict)

    def username(self, login: str) -> str | None:
        """Map a forge login to a census username, or None if unknown."""
        if login in self.namespace:
            return self.namespace[login]
        if login in self.contributors:
            return login
        return None

    def contributor(self, username: str) -> Contributor | None:
        return self.contributors.get(username)

    def contributor_for_login(self, login: str) -> Contributor | None:
        username = self.username(login)
        return self.contributors.get(username) if username else None

    def is_committer(self, login: str) -> bool:
        contributor = self.contributor_for_login(login)
        return contributor is not None and contributor.is_committer


def load_census(path: str) -> Census:
    """Load a census YAML file. Raises FileNotFoundError or ValueError on bad input."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Census file not found: {path}")
    with open(p) as f:
        data = yaml.safe_load(f) or {}

    contributors = {}
    for username, entry in (data.get("contributors") or {}).items():
        entry = entry or {}
        role = entry.get("role", "contributor")
        if role not in ROLES:
            raise ValueError(f"Unknown role {role!r} for census entry {username!r}.")
        contributors[username] = Contributor(username=username, full_name=entry.get("full_name"), role=role)

    return Census(
        domain=data.get("domain", ""),
        namespace=dict(data.get("namespace") or {}),
        contributors=contributors,
    )
