import os
import tempfile
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "check_name": "jcheck",  # status check that must pass on the head before /integrate
    "lock_ttl_minutes": 10,
    "lock_store": "sqlite",  # "sqlite" or "memory"
    "store_path": ".mergebot.db",
    "scratch_dir": None,  # None = system temp dir
    "census": "census.yml",
    "census_url": None,  # e.g. "https://openjdk.org/census#{username}"
    "forge_host": "github.com",
    "trunk_branch": "master",
    "backport_branch_prefix": "backport-",
    "backport_branch_policy": "suffix",  # "suffix" | "fail" | "overwrite"
    "backport_pr_base": "trunk",  # "trunk" = trunk_branch, "branch" = the /backport branch argument
    "ignore_stale_reviews": False,
    "min_reviewers": 1,
    "bot_name": "mergebot",
    "bot_email": "mergebot@users.noreply.github.com",
}

BACKPORT_BRANCH_POLICIES = ("suffix", "fail", "overwrite")
BACKPORT_PR_BASES = ("trunk", "branch")


def load_config(config_path: str = ".mergebot.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .mergebot.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["backport_branch_policy"] not in BACKPORT_BRANCH_POLICIES:
        raise ValueError(
            f"Unknown backport_branch_policy: {config['backport_branch_policy']!r}. "
            f"Choose one of {', '.join(BACKPORT_BRANCH_POLICIES)}."
        )
    if config["backport_pr_base"] not in BACKPORT_PR_BASES:
        raise ValueError(
            f"Unknown backport_pr_base: {config['backport_pr_base']!r}. "
            f"Choose one of {', '.join(BACKPORT_PR_BASES)}."
        )

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config


def scratch_root(config: dict) -> Path:
    """Return the directory under which per-invocation working copies are created."""
    root = Path(config.get("scratch_dir") or tempfile.gettempdir()) / "mergebot"
    root.mkdir(parents=True, exist_ok=True)
    return root
