"""
Dependency installation inside new worktrees.

Runs the project's configured setup commands (``npm install``,
``pip install -e '.[dev]'``, ...) in the worktree. All command output is
appended to a per-worktree log file; nothing is inherited from this process's
stdout. A failing command is recorded and the next one still runs, so a
partially set up worktree is preferred over none.

Example .sprig.json:
    {
      "setup": {
        "commands": [
          {"name": "node deps", "command": "npm install"},
          {"command": "uv sync"}
        ]
      }
    }
"""

import logging
import os
import subprocess
import time
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

from sprig.core.config.models import SetupCommand
from sprig.core.worktree.models import SetupFailure

logger = logging.getLogger(__name__)


class SetupRunner:
    """
    Runs setup commands for one worktree.

    Attributes:
        worktree_path: Worktree the commands run in
        log_file: Log receiving stdout and stderr of every command
    """

    def __init__(self, worktree_path: Path, log_file: str = ".worktree-setup.log"):
        self.worktree_path = worktree_path
        self.log_file = worktree_path / log_file

    def run(
        self,
        commands: Iterable[SetupCommand],
        on_start: Callable[[SetupCommand], None] | None = None,
    ) -> list[SetupFailure]:
        """
        Run every command in order.

        Args:
            commands: Commands to run
            on_start: Optional callback invoked before each command (progress output)

        Returns:
            Failures in the order they happened; empty if all commands succeeded
        """
        failures: list[SetupFailure] = []

        for command in commands:
            if on_start is not None:
                on_start(command)
            failure = self._run_one(command)
            if failure is not None:
                logger.warning(failure.message)
                failures.append(failure)

        return failures

    def _run_one(self, command: SetupCommand) -> SetupFailure | None:
        env = os.environ.copy()
        env["SPRIG_WORKTREE"] = str(self.worktree_path)

        start_time = time.time()
        with self.log_file.open("a", encoding="utf-8") as log:
            log.write(f"==> [{datetime.now().isoformat(timespec='seconds')}] {command.command}\n")
            log.flush()
            try:
                result = subprocess.run(
                    command.command,
                    shell=True,
                    cwd=str(self.worktree_path),
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=subprocess.STDOUT,
                )
            except OSError as e:
                log.write(f"==> failed to start: {e}\n")
                return SetupFailure(
                    command=command.command,
                    exit_code=None,
                    message=f"'{command.label}' could not be started: {e}",
                )

            duration = time.time() - start_time
            log.write(f"==> exit {result.returncode} after {duration:.1f}s\n")

        if result.returncode != 0:
            return SetupFailure(
                command=command.command,
                exit_code=result.returncode,
                message=f"'{command.label}' failed (exit {result.returncode})",
            )

        logger.debug(f"'{command.label}' completed in {duration:.1f}s")
        return None
