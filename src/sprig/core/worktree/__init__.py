"""
Task worktree lifecycle.

Each task gets a git worktree under <repo>/.claude/worktrees/<name>, a
branch worktree-<name>, and a dev port derived from the branch name.

Example:
    >>> from sprig.core.worktree import WorktreeLifecycle, WorktreeManager
    >>> manager = WorktreeManager(repo_root)
    >>> lifecycle = WorktreeLifecycle(manager, load_config(repo_root))
    >>> report = lifecycle.create("auth-refactor")
    >>> lifecycle.remove(report.path)
"""

from .exceptions import InvalidRequestError, WorktreeError, WorktreePathConflictError
from .lifecycle import WorktreeBackend, WorktreeLifecycle, resolve_target
from .manager import Worktree, WorktreeManager, owning_repo_root
from .models import (
    CreateRequest,
    CreationReport,
    RemovalReport,
    RemoveRequest,
    SetupFailure,
    StepResult,
    StepStatus,
    WorktreeRecord,
)
from .naming import branch_for, derive_port, is_task_branch, worktree_path_for

__all__ = [
    "WorktreeLifecycle",
    "WorktreeBackend",
    "WorktreeManager",
    "Worktree",
    "WorktreeError",
    "WorktreePathConflictError",
    "InvalidRequestError",
    "CreateRequest",
    "CreationReport",
    "RemoveRequest",
    "RemovalReport",
    "SetupFailure",
    "StepResult",
    "StepStatus",
    "WorktreeRecord",
    "branch_for",
    "derive_port",
    "is_task_branch",
    "owning_repo_root",
    "resolve_target",
    "worktree_path_for",
]
