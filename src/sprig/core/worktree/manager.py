"""
Git worktree manager implementation.

This module provides the WorktreeManager class, the only place sprig talks to
git. The lifecycle code sees it as a narrow capability interface:

- provision: create (or reuse) a worktree on the task branch
- list_worktree_branch: read back which branch a worktree has checked out
- remove_worktree: force-remove a worktree
- delete_branch: delete a local branch

Tests substitute a fake with the same methods.

All git output is captured by GitPython; nothing reaches the process stdout.
"""

import builtins
import logging
from dataclasses import dataclass
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from sprig.core.worktree.exceptions import (
    WorktreeError,
    WorktreePathConflictError,
)
from sprig.core.worktree.models import ProvisionResult, StepResult, StepStatus

logger = logging.getLogger(__name__)


@dataclass
class Worktree:
    """
    Represents a git worktree.

    Attributes:
        path: Absolute path to the worktree directory
        branch: Short branch name (None for detached HEAD)
        commit: Commit SHA
        is_bare: Whether this is the bare repository
        is_locked: Whether the worktree is locked
    """

    path: Path
    branch: str | None
    commit: str
    is_bare: bool = False
    is_locked: bool = False


def _stderr(e: GitCommandError) -> str:
    return str(e.stderr or e).strip()


def owning_repo_root(path: Path) -> Path | None:
    """
    Main working tree of the repository that owns the worktree at ``path``.

    A linked worktree's git dir lives under the owner's ``.git/worktrees``;
    the common dir is the owner's ``.git``. Returns None when ``path`` is not
    a readable worktree or belongs to a bare repository.
    """
    try:
        repo = Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        logger.debug(f"Could not open {path} as a worktree: {e}")
        return None
    common_dir = Path(repo.common_dir).resolve()
    if common_dir.name != ".git":
        return None
    return common_dir.parent


class WorktreeManager:
    """
    Manages the task worktrees of one source repository.

    Example:
        >>> manager = WorktreeManager(Path("/src/app"))
        >>> result = manager.provision("worktree-auth", manager.worktree_base / "auth")
        >>> manager.list_worktree_branch(result.path)
        'worktree-auth'
        >>> manager.remove_worktree(result.path)
    """

    def __init__(self, repo_path: Path | None = None, worktrees_dir: str = ".claude/worktrees"):
        """
        Initialize the worktree manager.

        Args:
            repo_path: Path to git repository (defaults to current directory)
            worktrees_dir: Directory, relative to the repo root, holding task worktrees

        Raises:
            WorktreeError: If not in a git repository
        """
        self.repo_path = repo_path or Path.cwd()
        self.worktrees_dir = worktrees_dir

        try:
            self.repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise WorktreeError(f"Not a git repository: {self.repo_path}") from e

        self.repo_root = Path(self.repo.working_dir).resolve()
        self.worktree_base = self.repo_root / worktrees_dir

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list(self) -> list[Worktree]:
        """
        List all worktrees in the repository.

        Returns:
            List of Worktree objects

        Raises:
            WorktreeError: If listing worktrees fails
        """
        try:
            output = self.repo.git.worktree("list", "--porcelain")
        except GitCommandError as e:
            raise WorktreeError(f"Failed to list worktrees: {_stderr(e)}") from e

        worktrees: list[Worktree] = []
        current_worktree: dict[str, str | bool] = {}

        for line in output.splitlines():
            line = line.strip()
            if not line:
                # Empty line ends an entry
                if current_worktree:
                    worktrees.append(self._parse_worktree(current_worktree))
                    current_worktree = {}
                continue

            if line.startswith("worktree "):
                current_worktree["path"] = line[len("worktree ") :]
            elif line.startswith("HEAD "):
                current_worktree["commit"] = line[len("HEAD ") :]
            elif line.startswith("branch "):
                current_worktree["branch"] = line[len("branch ") :]
            elif line == "bare":
                current_worktree["is_bare"] = True
            elif line == "locked" or line.startswith("locked "):
                current_worktree["is_locked"] = True

        if current_worktree:
            worktrees.append(self._parse_worktree(current_worktree))

        return worktrees

    def _parse_worktree(self, data: dict[str, str | bool]) -> Worktree:
        """Parse worktree data dict into Worktree object."""
        branch = str(data["branch"]) if "branch" in data else None
        if branch and branch.startswith("refs/heads/"):
            branch = branch[len("refs/heads/") :]
        return Worktree(
            path=Path(str(data.get("path", ""))),
            branch=branch,
            commit=str(data.get("commit", "")),
            is_bare=bool(data.get("is_bare", False)),
            is_locked=bool(data.get("is_locked", False)),
        )

    def managed(self) -> builtins.list[Worktree]:
        """Worktrees that live directly under the worktrees directory."""
        base = self.worktree_base.resolve()
        return [w for w in self.list() if w.path.resolve().parent == base]

    def is_registered(self, path: Path) -> bool:
        """Whether ``path`` is a worktree known to this repository."""
        target = path.resolve()
        return any(w.path.resolve() == target for w in self.list())

    def branch_exists(self, branch: str) -> bool:
        """Whether a local branch with this exact name exists."""
        try:
            self.repo.git.rev_parse("--verify", "--quiet", f"refs/heads/{branch}")
        except GitCommandError:
            return False
        return True

    def list_worktree_branch(self, path: Path) -> str | None:
        """
        Branch currently checked out in the worktree at ``path``.

        Best-effort: returns None for a detached HEAD or if the worktree
        cannot be read at all.
        """
        try:
            branch = Repo(path).git.rev_parse("--abbrev-ref", "HEAD").strip()
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError) as e:
            logger.debug(f"Could not read branch of {path}: {e}")
            return None
        if not branch or branch == "HEAD":
            return None
        return branch

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def provision(self, branch: str, path: Path) -> ProvisionResult:
        """
        Put a worktree for ``branch`` at ``path``, reusing what already exists.

        - path already a worktree of this repo: returned as-is
        - path occupied by anything else: WorktreePathConflictError
        - branch exists: attach a new worktree to it
        - otherwise: create branch and worktree from HEAD

        Raises:
            WorktreePathConflictError: If the path is occupied by a non-worktree
            WorktreeError: If git fails
        """
        path = path.resolve()

        if path.exists():
            if self.is_registered(path):
                logger.info(f"Reusing existing worktree at {path}")
                return ProvisionResult(
                    path=path,
                    branch=self.list_worktree_branch(path) or branch,
                    created_worktree=False,
                    created_branch=False,
                )
            raise WorktreePathConflictError(path)

        path.parent.mkdir(parents=True, exist_ok=True)

        existing_branch = self.branch_exists(branch)
        try:
            if existing_branch:
                # git worktree add <path> <branch>
                self.repo.git.worktree("add", str(path), branch)
            else:
                # git worktree add -b <branch> <path> HEAD
                self.repo.git.worktree("add", "-b", branch, str(path), "HEAD")
        except GitCommandError as e:
            raise WorktreeError(f"Failed to create worktree: {_stderr(e)}") from e

        logger.info(f"Created worktree at {path} on {branch}")
        return ProvisionResult(
            path=path,
            branch=branch,
            created_worktree=True,
            created_branch=not existing_branch,
        )

    def ensure_excluded(self) -> bool:
        """
        Keep the worktrees directory out of the source repository's status.

        Appends it to .git/info/exclude unless git already ignores it.

        Returns:
            True if an exclude entry was added
        """
        try:
            self.repo.git.check_ignore("-q", self.worktrees_dir)
            return False
        except GitCommandError:
            pass

        exclude = Path(self.repo.common_dir) / "info" / "exclude"
        pattern = f"/{self.worktrees_dir}"
        existing = exclude.read_text() if exclude.exists() else ""
        if pattern in existing.splitlines():
            return False

        exclude.parent.mkdir(parents=True, exist_ok=True)
        with exclude.open("a") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(pattern + "\n")
        logger.info(f"Added {pattern} to {exclude}")
        return True

    def remove_worktree(self, path: Path) -> StepResult:
        """
        Force-remove a worktree, discarding uncommitted changes.

        A failure is reported rather than raised. If the directory is already
        gone, stale administrative data is pruned and the step counts as absent.
        """
        try:
            self.repo.git.worktree("remove", "--force", str(path))
        except GitCommandError as e:
            if not path.exists():
                try:
                    self.prune()
                except WorktreeError as prune_error:
                    logger.debug(str(prune_error))
                return StepResult(
                    step="remove-worktree", status=StepStatus.ABSENT, detail="already removed"
                )
            return StepResult(step="remove-worktree", status=StepStatus.FAILED, detail=_stderr(e))
        return StepResult(step="remove-worktree", status=StepStatus.OK, detail=str(path))

    def delete_branch(self, branch: str) -> StepResult:
        """Force-delete a local branch. A missing branch counts as absent."""
        if not self.branch_exists(branch):
            return StepResult(step="delete-branch", status=StepStatus.ABSENT, detail=branch)
        try:
            self.repo.git.branch("-D", branch)
        except GitCommandError as e:
            return StepResult(step="delete-branch", status=StepStatus.FAILED, detail=_stderr(e))
        return StepResult(step="delete-branch", status=StepStatus.OK, detail=branch)

    def prune(self) -> None:
        """
        Prune stale worktree administrative data.

        Equivalent to 'git worktree prune'.

        Raises:
            WorktreeError: If prune operation fails
        """
        try:
            self.repo.git.worktree("prune")
        except GitCommandError as e:
            raise WorktreeError(f"Failed to prune worktrees: {_stderr(e)}") from e

