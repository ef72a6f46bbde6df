"""Environment helpers.

Two concerns live here:
- locating the source repository root supplied by the host
  (CLAUDE_PROJECT_DIR), with an explicit path or the cwd as fallbacks
- reading KEY=VALUE env files (e.g. the generated .env.local) with
  python-dotenv instead of ad-hoc text matching
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values

PROJECT_DIR_ENV = "CLAUDE_PROJECT_DIR"


def read_env_file(path: Path) -> dict[str, str]:
    """Parse an env file into a dict.

    Missing files yield an empty dict. Keys without a value (``FOO`` with no
    ``=``) are dropped.
    """
    if not path.is_file():
        return {}
    values = dotenv_values(path)
    out: dict[str, str] = {}
    for k, v in values.items():
        if k is None or v is None:
            continue
        out[str(k)] = str(v)
    return out


def resolve_repo_root(explicit: Path | str | None = None) -> Path:
    """Return the absolute source repository root.

    Precedence: explicit argument > $CLAUDE_PROJECT_DIR > current directory.
    """
    if explicit:
        return Path(explicit).expanduser().resolve()
    if env_root := os.environ.get(PROJECT_DIR_ENV):
        return Path(env_root).expanduser().resolve()
    return Path.cwd().resolve()
