"""
Exceptions raised by worktree lifecycle operations.

Exception Hierarchy:
    WorktreeError (base, fatal for the current workflow)
    ├── WorktreePathConflictError (path occupied by something else)
    └── InvalidRequestError (malformed host request on stdin)

Recoverable conditions (a missing env file, a failed setup command, no
process bound to the port) are never raised; they are reported through
StepResult / SetupFailure values instead.
"""


class WorktreeError(Exception):
    """Base exception for worktree operations."""

    pass


class WorktreePathConflictError(WorktreeError):
    """Raised when the target path exists but is not a registered worktree."""

    def __init__(self, path: object) -> None:
        super().__init__(f"Path exists and is not a worktree of this repository: {path}")
        self.path = path


class InvalidRequestError(WorktreeError):
    """Raised when the host request cannot be parsed or lacks required fields."""

    pass
