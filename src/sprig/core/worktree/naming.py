"""
Identity derivation for task worktrees.

Everything about a task worktree is recomputed from its name: there is no
metadata store. Create and remove must agree exactly, so every derivation
lives here and nowhere else.

    name "auth-refactor"
      -> branch "worktree-auth-refactor"
      -> path   <repo_root>/.claude/worktrees/auth-refactor
      -> port   derive_port("worktree-auth-refactor") == 7555

Two task names can map to the same port. That is accepted; nothing here
detects or resolves collisions.
"""

import hashlib
from pathlib import Path

DEFAULT_PORT_LOW = 3100
DEFAULT_PORT_SPAN = 6900
DEFAULT_PORT_DIGITS = 5


def derive_port(
    key: str,
    *,
    low: int = DEFAULT_PORT_LOW,
    span: int = DEFAULT_PORT_SPAN,
    digits: int = DEFAULT_PORT_DIGITS,
) -> int:
    """
    Map a key (normally the task branch name) to a port in [low, low + span).

    Takes the md5 hex digest of the key, keeps only its decimal digits, reads
    the first ``digits`` of them as a base-10 integer and folds that into the
    range. Pure: no randomness, no external state.

    Args:
        key: Arbitrary string, hashed as UTF-8
        low: Lowest assignable port
        span: Size of the port range
        digits: Number of digest digits used

    Returns:
        Port number

    Example:
        >>> derive_port("worktree-auth-refactor")
        7555
    """
    if span < 1:
        raise ValueError(f"span must be positive, got {span}")
    digest = hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()
    numeric = "".join(ch for ch in digest if ch.isdigit())[:digits]
    return int(numeric or "0") % span + low


def validate_task_name(name: str) -> str:
    """
    Check that a task name is usable as a single path component.

    Returns:
        The name, unchanged

    Raises:
        ValueError: If the name is empty, a dot entry, or contains separators
    """
    if not name or not name.strip():
        raise ValueError("task name must not be empty")
    if name in (".", "..") or "/" in name or "\\" in name or "\0" in name:
        raise ValueError(f"task name must be a single path component: {name!r}")
    return name


def branch_for(name: str, prefix: str = "worktree-") -> str:
    """Task branch name for a task."""
    return f"{prefix}{name}"


def is_task_branch(branch: str | None, prefix: str = "worktree-") -> bool:
    """
    Whether a branch was created by sprig and may therefore be deleted.

    The bare prefix itself does not count, nor does a detached HEAD.
    """
    if not branch or branch == "HEAD":
        return False
    return branch.startswith(prefix) and len(branch) > len(prefix)


def worktree_path_for(repo_root: Path, name: str, worktrees_dir: str = ".claude/worktrees") -> Path:
    """Absolute worktree path for a task."""
    return Path(repo_root).resolve() / worktrees_dir / name
