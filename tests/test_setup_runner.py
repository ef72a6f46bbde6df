"""
Tests for SetupRunner.

Tests that setup commands run inside the worktree, log their output to the
setup log, and that one failing command does not stop the others.
"""

import sys
from unittest.mock import patch

import pytest

from sprig.core.config.models import SetupCommand
from sprig.core.worktree.setup_runner import SetupRunner

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


@pytest.fixture
def worktree(tmp_path):
    path = tmp_path / "worktree"
    path.mkdir()
    return path


class TestSetupRunner:
    """Test running setup commands."""

    def test_all_succeed(self, worktree):
        """Test successful commands yield no failures."""
        runner = SetupRunner(worktree)
        failures = runner.run([SetupCommand(command="true"), SetupCommand(command="true")])
        assert failures == []

    def test_runs_in_worktree(self, worktree):
        """Test commands run with the worktree as cwd."""
        SetupRunner(worktree).run([SetupCommand(command="pwd > where.txt")])
        assert (worktree / "where.txt").read_text().strip() == str(worktree.resolve())

    def test_worktree_env_var(self, worktree):
        """Test SPRIG_WORKTREE is exported to commands."""
        SetupRunner(worktree).run([SetupCommand(command='echo "$SPRIG_WORKTREE" > env.txt')])
        assert (worktree / "env.txt").read_text().strip() == str(worktree)

    def test_failure_does_not_stop_later_commands(self, worktree):
        """Test a failing command is recorded and the next one still runs."""
        failures = SetupRunner(worktree).run(
            [
                SetupCommand(name="broken", command="exit 3"),
                SetupCommand(command="touch second-ran"),
            ]
        )

        assert len(failures) == 1
        assert failures[0].exit_code == 3
        assert failures[0].message == "'broken' failed (exit 3)"
        assert (worktree / "second-ran").exists()

    def test_output_goes_to_log(self, worktree, capfd):
        """Test command stdout/stderr land in the log, not on our stdout."""
        runner = SetupRunner(worktree, ".setup.log")
        runner.run([SetupCommand(command="echo to-stdout; echo to-stderr >&2")])

        captured = capfd.readouterr()
        assert "to-stdout" not in captured.out
        assert "to-stderr" not in captured.err

        log = runner.log_file.read_text()
        assert runner.log_file == worktree / ".setup.log"
        assert "to-stdout" in log
        assert "to-stderr" in log
        assert "==> exit 0" in log

    def test_log_appends_across_runs(self, worktree):
        """Test a second create run appends to the same log."""
        runner = SetupRunner(worktree)
        runner.run([SetupCommand(command="echo first")])
        runner.run([SetupCommand(command="echo second")])
        log = runner.log_file.read_text()
        assert log.index("first") < log.index("second")

    def test_commands_get_no_stdin(self, worktree):
        """Test commands cannot read the hook's stdin."""
        failures = SetupRunner(worktree).run([SetupCommand(command="cat > stdin.txt")])
        assert failures == []
        assert (worktree / "stdin.txt").read_text() == ""

    def test_on_start_callback(self, worktree):
        """Test the progress callback is called once per command, in order."""
        seen = []
        commands = [SetupCommand(name="one", command="true"), SetupCommand(command="false")]
        SetupRunner(worktree).run(commands, on_start=lambda c: seen.append(c.label))
        assert seen == ["one", "false"]

    def test_start_failure(self, worktree):
        """Test a command that cannot be started is a failure without exit code."""
        with patch(
            "sprig.core.worktree.setup_runner.subprocess.run",
            side_effect=OSError("no shell"),
        ):
            failures = SetupRunner(worktree).run([SetupCommand(command="npm install")])

        assert len(failures) == 1
        assert failures[0].exit_code is None
        assert "could not be started" in failures[0].message
        assert "failed to start" in (worktree / ".worktree-setup.log").read_text()
