"""
Tests for WorktreeManager.

Tests git worktree operations: provisioning (new branch, existing branch,
reuse, path conflicts), listing, branch lookup, removal and branch deletion.
Unit tests mock git.Repo; the integration class runs against a real repository.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from git import GitCommandError, InvalidGitRepositoryError

from sprig.core.worktree import (
    StepStatus,
    Worktree,
    WorktreeError,
    WorktreeManager,
    WorktreePathConflictError,
    owning_repo_root,
)


@pytest.fixture
def mock_repo(tmp_path):
    """Provide a mock git.Repo object."""
    repo = MagicMock()
    repo.working_dir = str(tmp_path / "repo")
    repo.git = MagicMock()
    repo.git.worktree.return_value = ""
    return repo


@pytest.fixture
def worktree_manager(mock_repo, tmp_path):
    """Provide a WorktreeManager instance with mocked repo."""
    (tmp_path / "repo").mkdir()
    with patch("sprig.core.worktree.manager.Repo") as mock_repo_class:
        mock_repo_class.return_value = mock_repo
        return WorktreeManager(tmp_path / "repo")


class TestWorktreeManagerInit:
    """Test WorktreeManager initialization."""

    def test_init_with_valid_repo(self, tmp_path):
        """Test initialization with a valid git repository."""
        with patch("sprig.core.worktree.manager.Repo") as mock_repo_class:
            mock_repo = MagicMock()
            mock_repo.working_dir = str(tmp_path)
            mock_repo_class.return_value = mock_repo

            manager = WorktreeManager(tmp_path)

            assert manager.repo_root == tmp_path.resolve()
            assert manager.repo == mock_repo
            assert manager.worktree_base == tmp_path.resolve() / ".claude" / "worktrees"

    def test_init_with_custom_worktrees_dir(self, tmp_path):
        """Test a configured worktrees directory."""
        with patch("sprig.core.worktree.manager.Repo") as mock_repo_class:
            mock_repo_class.return_value.working_dir = str(tmp_path)
            manager = WorktreeManager(tmp_path, "trees")
            assert manager.worktree_base == tmp_path.resolve() / "trees"

    def test_init_with_invalid_repo(self, tmp_path):
        """Test initialization fails when not in a git repository."""
        with patch("sprig.core.worktree.manager.Repo") as mock_repo_class:
            mock_repo_class.side_effect = InvalidGitRepositoryError()

            with pytest.raises(WorktreeError, match="Not a git repository"):
                WorktreeManager(tmp_path)


class TestWorktreeList:
    """Test worktree listing."""

    def test_list_parses_porcelain(self, worktree_manager, mock_repo):
        """Test parsing of 'git worktree list --porcelain'."""
        base = worktree_manager.worktree_base
        mock_repo.git.worktree.return_value = (
            f"worktree {worktree_manager.repo_root}\n"
            "HEAD aaa111\n"
            "branch refs/heads/main\n"
            "\n"
            f"worktree {base / 'auth'}\n"
            "HEAD bbb222\n"
            "branch refs/heads/worktree-auth\n"
            "locked\n"
            "\n"
            f"worktree {base / 'detached'}\n"
            "HEAD ccc333\n"
            "detached\n"
        )

        worktrees = worktree_manager.list()

        assert worktrees == [
            Worktree(path=worktree_manager.repo_root, branch="main", commit="aaa111"),
            Worktree(path=base / "auth", branch="worktree-auth", commit="bbb222", is_locked=True),
            Worktree(path=base / "detached", branch=None, commit="ccc333"),
        ]
        mock_repo.git.worktree.assert_called_once_with("list", "--porcelain")

    def test_list_failure(self, worktree_manager, mock_repo):
        """Test git errors become WorktreeError."""
        mock_repo.git.worktree.side_effect = GitCommandError("worktree", 128, stderr="boom")
        with pytest.raises(WorktreeError, match="Failed to list worktrees"):
            worktree_manager.list()

    def test_managed_filters_to_worktrees_dir(self, worktree_manager, mock_repo):
        """Test only direct children of the worktrees dir are managed."""
        base = worktree_manager.worktree_base
        mock_repo.git.worktree.return_value = (
            f"worktree {worktree_manager.repo_root}\nHEAD a\nbranch refs/heads/main\n\n"
            f"worktree {base / 'auth'}\nHEAD b\nbranch refs/heads/worktree-auth\n\n"
            f"worktree /elsewhere/other\nHEAD c\nbranch refs/heads/other\n"
        )
        assert [w.path.name for w in worktree_manager.managed()] == ["auth"]


class TestProvision:
    """Test worktree provisioning."""

    def test_new_branch(self, worktree_manager, mock_repo):
        """Test creating branch and worktree from HEAD."""
        path = worktree_manager.worktree_base / "auth"
        mock_repo.git.rev_parse.side_effect = GitCommandError("rev-parse", 1)

        result = worktree_manager.provision("worktree-auth", path)

        mock_repo.git.worktree.assert_called_once_with(
            "add", "-b", "worktree-auth", str(path), "HEAD"
        )
        assert result.path == path
        assert result.created_worktree
        assert result.created_branch
        assert path.parent.is_dir()

    def test_existing_branch(self, worktree_manager, mock_repo):
        """Test attaching a new worktree to an existing branch."""
        path = worktree_manager.worktree_base / "auth"
        mock_repo.git.rev_parse.return_value = "abc123"

        result = worktree_manager.provision("worktree-auth", path)

        mock_repo.git.worktree.assert_called_once_with("add", str(path), "worktree-auth")
        assert result.created_worktree
        assert not result.created_branch

    def test_git_failure(self, worktree_manager, mock_repo):
        """Test git errors are fatal."""
        path = worktree_manager.worktree_base / "auth"
        mock_repo.git.rev_parse.side_effect = GitCommandError("rev-parse", 1)
        mock_repo.git.worktree.side_effect = GitCommandError(
            "worktree", 128, stderr="fatal: invalid reference"
        )

        with pytest.raises(WorktreeError, match="Failed to create worktree"):
            worktree_manager.provision("worktree-auth", path)

    def test_path_conflict(self, worktree_manager, mock_repo):
        """Test an occupied path that is not a worktree is refused."""
        path = worktree_manager.worktree_base / "auth"
        path.mkdir(parents=True)
        mock_repo.git.worktree.return_value = (
            f"worktree {worktree_manager.repo_root}\nHEAD a\nbranch refs/heads/main\n"
        )

        with pytest.raises(WorktreePathConflictError) as exc_info:
            worktree_manager.provision("worktree-auth", path)
        assert exc_info.value.path == path.resolve()


class TestRemoval:
    """Test worktree removal and branch deletion."""

    def test_remove_worktree(self, worktree_manager, mock_repo, tmp_path):
        """Test forced removal."""
        path = tmp_path / "wt"
        result = worktree_manager.remove_worktree(path)
        mock_repo.git.worktree.assert_called_once_with("remove", "--force", str(path))
        assert result.status == StepStatus.OK

    def test_remove_failure_reported(self, worktree_manager, mock_repo, tmp_path):
        """Test a failure on an existing path is reported, not raised."""
        path = tmp_path / "wt"
        path.mkdir()
        mock_repo.git.worktree.side_effect = GitCommandError("worktree", 128, stderr="locked")
        result = worktree_manager.remove_worktree(path)
        assert result.status == StepStatus.FAILED
        assert "locked" in result.detail

    def test_remove_already_gone_prunes(self, worktree_manager, mock_repo, tmp_path):
        """Test a vanished directory is pruned and counts as absent."""
        path = tmp_path / "gone"
        mock_repo.git.worktree.side_effect = [
            GitCommandError("worktree", 128, stderr="not a working tree"),
            "",
        ]
        result = worktree_manager.remove_worktree(path)
        assert result.status == StepStatus.ABSENT
        mock_repo.git.worktree.assert_called_with("prune")

    def test_delete_branch(self, worktree_manager, mock_repo):
        """Test deleting an existing branch."""
        mock_repo.git.rev_parse.return_value = "abc123"
        result = worktree_manager.delete_branch("worktree-auth")
        mock_repo.git.branch.assert_called_once_with("-D", "worktree-auth")
        assert result.status == StepStatus.OK

    def test_delete_missing_branch(self, worktree_manager, mock_repo):
        """Test a missing branch is absent, not an error."""
        mock_repo.git.rev_parse.side_effect = GitCommandError("rev-parse", 1)
        result = worktree_manager.delete_branch("worktree-auth")
        mock_repo.git.branch.assert_not_called()
        assert result.status == StepStatus.ABSENT

    def test_delete_branch_failure(self, worktree_manager, mock_repo):
        """Test a failed delete is reported."""
        mock_repo.git.rev_parse.return_value = "abc123"
        mock_repo.git.branch.side_effect = GitCommandError("branch", 1, stderr="checked out")
        result = worktree_manager.delete_branch("worktree-auth")
        assert result.status == StepStatus.FAILED


class TestListWorktreeBranch:
    """Test reading back a worktree's branch."""

    def test_branch(self, worktree_manager, tmp_path):
        """Test a checked-out branch is returned."""
        with patch("sprig.core.worktree.manager.Repo") as repo_class:
            repo_class.return_value.git.rev_parse.return_value = "worktree-auth\n"
            assert worktree_manager.list_worktree_branch(tmp_path) == "worktree-auth"
            repo_class.return_value.git.rev_parse.assert_called_once_with("--abbrev-ref", "HEAD")

    def test_detached(self, worktree_manager, tmp_path):
        """Test a detached HEAD yields None."""
        with patch("sprig.core.worktree.manager.Repo") as repo_class:
            repo_class.return_value.git.rev_parse.return_value = "HEAD"
            assert worktree_manager.list_worktree_branch(tmp_path) is None

    def test_unreadable(self, worktree_manager, tmp_path):
        """Test a directory that is not a worktree yields None."""
        with patch("sprig.core.worktree.manager.Repo") as repo_class:
            repo_class.side_effect = InvalidGitRepositoryError()
            assert worktree_manager.list_worktree_branch(tmp_path) is None


class TestWorktreeManagerIntegration:
    """Run the manager against a real repository."""

    def test_provision_reuse_remove(self, git_repo, git):
        """Test the full worktree life against real git."""
        manager = WorktreeManager(git_repo)
        path = manager.worktree_base / "auth"

        created = manager.provision("worktree-auth", path)
        assert created.created_worktree and created.created_branch
        assert (path / "README.md").exists()
        assert manager.list_worktree_branch(path) == "worktree-auth"
        assert manager.is_registered(path)
        assert [w.path for w in manager.managed()] == [path]

        reused = manager.provision("worktree-auth", path)
        assert not reused.created_worktree
        assert reused.branch == "worktree-auth"

        (path / "scratch.txt").write_text("uncommitted")
        assert manager.remove_worktree(path).status == StepStatus.OK
        assert not path.exists()
        assert manager.delete_branch("worktree-auth").status == StepStatus.OK
        assert git(git_repo, "branch", "--list", "worktree-auth") == ""

    def test_existing_branch_is_attached(self, git_repo, git):
        """Test a pre-existing task branch is checked out, not recreated."""
        git(git_repo, "branch", "worktree-old")
        manager = WorktreeManager(git_repo)
        path = manager.worktree_base / "old"

        result = manager.provision("worktree-old", path)

        assert result.created_worktree
        assert not result.created_branch
        assert manager.list_worktree_branch(path) == "worktree-old"

    def test_ensure_excluded(self, git_repo, git):
        """Test the worktrees dir is kept out of the source repo's status."""
        manager = WorktreeManager(git_repo)
        manager.provision("worktree-auth", manager.worktree_base / "auth")

        assert manager.ensure_excluded() is True
        assert manager.ensure_excluded() is False
        assert ".claude" not in git(git_repo, "status", "--porcelain")

    def test_discovers_root_from_subdirectory(self, git_repo):
        """Test the repository is found from a nested directory."""
        nested = git_repo / "src" / "pkg"
        nested.mkdir(parents=True)
        manager = WorktreeManager(nested)
        assert manager.repo_root == Path(git_repo)

    def test_owning_repo_root(self, git_repo, tmp_path):
        """Test a linked worktree leads back to the repository that created it."""
        manager = WorktreeManager(git_repo)
        path = manager.worktree_base / "auth"
        manager.provision("worktree-auth", path)

        assert owning_repo_root(path) == git_repo
        assert owning_repo_root(git_repo) == git_repo

        plain = tmp_path / "plain"
        plain.mkdir()
        assert owning_repo_root(plain) is None
