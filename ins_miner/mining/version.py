from __future__ import annotations

import os
import pathlib
import subprocess
from typing import Optional

# Bump this when the hash layout or CLI surface changes incompatibly.
__version__ = "0.1.0"


def _git_describe(repo_root: Optional[pathlib.Path] = None) -> Optional[str]:
    """
    Return `git describe --tags --dirty --always` for the checkout containing
    this file, or None when git metadata is unavailable (sdist/wheel installs).
    """
    root = repo_root or pathlib.Path(__file__).resolve().parents[2]
    if not (root / ".git").exists():
        return None
    try:
        out = subprocess.check_output(
            ["git", "-C", str(root), "describe", "--tags", "--dirty", "--always"],
            stderr=subprocess.DEVNULL,
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8", "replace").strip() or None


def get_version() -> str:
    """
    Human-friendly version string:
      1) INS_MINER_VERSION env override
      2) `git describe` for editable/dev checkouts
      3) semantic __version__
    """
    env = os.getenv("INS_MINER_VERSION")
    if env:
        return env
    desc = _git_describe()
    if desc:
        return desc
    return f"v{__version__}"


__all__ = ["__version__", "get_version"]
