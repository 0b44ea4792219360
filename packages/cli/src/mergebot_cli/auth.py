"""GitHub token resolution for the bot account.

Resolution order (stops at first success):
  1. MERGEBOT_TOKEN (token of the bot account; needed to push to its forks)
  2. GITHUB_TOKEN (the token a CI job is handed)
  3. `gh auth token` (GitHub CLI session of whoever runs the bot locally)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("MERGEBOT_TOKEN", "GITHUB_TOKEN")


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI unavailable; no token from a CLI session.")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no source provides one."""
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token:
            logger.debug("Using GitHub token from %s.", name)
            return token

    token = _gh_cli_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session.")
    return token
