"""
Create and remove workflows for task worktrees.

State per task: ABSENT -> PROVISIONED (create) -> ABSENT (remove).

create:
    derive record -> provision worktree (fatal on failure) -> copy env and
    write port override -> run setup commands (failures collected)

remove:
    target missing? done -> reap processes on the recorded port ->
    read back branch -> force-remove worktree -> delete branch if and only
    if it carries the task-branch prefix

Both workflows talk to git only through the manager passed in, so tests can
hand in a fake. Remove also runs without one, reaping only.

Progress messages are rich markup; interpolated text is escaped.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import psutil
from rich.markup import escape

from sprig.core.config.models import SetupCommand, SprigConfig
from sprig.core.worktree.exceptions import WorktreeError
from sprig.core.worktree.materialize import materialize
from sprig.core.worktree.models import (
    CreationReport,
    ProvisionResult,
    RemovalReport,
    SetupFailure,
    StepResult,
    StepStatus,
    WorktreeRecord,
)
from sprig.core.worktree.naming import is_task_branch
from sprig.core.worktree.reaper import read_port, reap_port
from sprig.core.worktree.setup_runner import SetupRunner

logger = logging.getLogger(__name__)

Progress = Callable[[str], None]


class WorktreeBackend(Protocol):
    """The git operations the lifecycle needs. WorktreeManager implements it."""

    repo_root: Path

    def provision(self, branch: str, path: Path) -> ProvisionResult: ...

    def ensure_excluded(self) -> bool: ...

    def list_worktree_branch(self, path: Path) -> str | None: ...

    def remove_worktree(self, path: Path) -> StepResult: ...

    def delete_branch(self, branch: str) -> StepResult: ...


def resolve_target(path: Path) -> bool:
    """Whether the worktree directory still exists."""
    return path.is_dir()


def _log_progress(message: str) -> None:
    logger.debug(message)


class WorktreeLifecycle:
    """
    Runs the create and remove workflows against one source repository.

    Example:
        >>> manager = WorktreeManager(repo_root, config.worktrees_dir)
        >>> lifecycle = WorktreeLifecycle(manager, config, progress=console.print)
        >>> report = lifecycle.create("auth-refactor")
        >>> report.path
        PosixPath('/src/app/.claude/worktrees/auth-refactor')
    """

    def __init__(
        self,
        backend: WorktreeBackend | None,
        config: SprigConfig,
        progress: Progress | None = None,
    ):
        self.backend = backend
        self.config = config
        self.progress = progress or _log_progress

    def _require_backend(self) -> WorktreeBackend:
        if self.backend is None:
            raise WorktreeError("No git repository to manage worktrees in")
        return self.backend

    def record_for(self, name: str) -> WorktreeRecord:
        return WorktreeRecord.derive(self._require_backend().repo_root, name, self.config)

    def create(self, name: str) -> CreationReport:
        """
        Provision a worktree for ``name`` and prepare it for work.

        Idempotent: an existing worktree at the derived path is reused.

        Raises:
            WorktreeError: If the worktree cannot be provisioned
        """
        backend = self._require_backend()
        record = self.record_for(name)
        self.progress(
            f"Creating worktree (branch: {escape(record.branch)}, port: {record.port})..."
        )

        provision = backend.provision(record.branch, record.path)
        if not provision.created_worktree:
            self.progress("  Reusing existing worktree")

        try:
            backend.ensure_excluded()
        except OSError as e:
            logger.warning(f"Could not exclude {self.config.worktrees_dir} from git: {e}")

        self.progress("  Copying env files...")
        env = self.config.env
        materialized = materialize(
            backend.repo_root,
            provision.path,
            env.files,
            env.dirs,
            port=record.port,
            override_file=env.override_file,
            port_key=env.port_key,
        )
        for step in materialized.steps:
            if step.failed:
                target = escape(step.step.split(":", 1)[1])
                detail = escape(step.detail or "")
                self.progress(f"  [yellow]Could not copy {target}: {detail}[/yellow]")

        setup_log: Path | None = None
        failures: list[SetupFailure] = []
        commands = self.config.setup.commands
        if commands:
            runner = SetupRunner(provision.path, self.config.setup.log_file)
            setup_log = runner.log_file
            failures = runner.run(commands, on_start=self._announce)

        if failures:
            self.progress("[yellow]Setup completed with errors:[/yellow]")
            for failure in failures:
                self.progress(f"  - {escape(failure.message)}")
            self.progress(f"See {escape(str(setup_log))} for details.")
        else:
            self.progress("[green]Worktree ready.[/green]")

        return CreationReport(
            record=record,
            provision=provision,
            materialize=materialized,
            setup_failures=failures,
            setup_log=setup_log,
        )

    def _announce(self, command: SetupCommand) -> None:
        self.progress(f"  Running {escape(command.label)}...")

    def remove(self, worktree_path: Path) -> RemovalReport:
        """
        Tear down the worktree at ``worktree_path``.

        Never raises for conditions listed as best-effort: every step's
        outcome is in the returned report. A missing target is a no-op.
        Without a backend only the dev server is stopped and the git steps
        are reported as one failed ``open-repository`` step.
        """
        path = Path(worktree_path)
        report = RemovalReport(worktree_path=path)

        if not resolve_target(path):
            report.already_absent = True
            return report

        report.steps.append(self._reap(path, report))

        if self.backend is None:
            report.steps.append(
                StepResult(
                    step="open-repository",
                    status=StepStatus.FAILED,
                    detail="no git repository to remove the worktree from",
                )
            )
        else:
            self._decommission(self.backend, path, report)

        for step in report.failures:
            detail = escape(step.detail or "")
            self.progress(f"[yellow]{escape(step.step)} failed: {detail}[/yellow]")

        return report

    def _decommission(self, backend: WorktreeBackend, path: Path, report: RemovalReport) -> None:
        report.branch = backend.list_worktree_branch(path)
        if report.branch is None:
            report.steps.append(StepResult(step="read-branch", status=StepStatus.ABSENT))
        else:
            report.steps.append(
                StepResult(step="read-branch", status=StepStatus.OK, detail=report.branch)
            )

        report.steps.append(backend.remove_worktree(path))

        if report.branch is not None and is_task_branch(report.branch, self.config.branch_prefix):
            report.steps.append(backend.delete_branch(report.branch))
        elif report.branch is not None:
            logger.info(f"Keeping {report.branch}: not a {self.config.branch_prefix}* branch")
            report.steps.append(
                StepResult(step="delete-branch", status=StepStatus.SKIPPED, detail=report.branch)
            )

    def _reap(self, path: Path, report: RemovalReport) -> StepResult:
        report.port = read_port(path / self.config.env.override_file, self.config.env.port_key)
        if report.port is None:
            return StepResult(step="reap-port", status=StepStatus.ABSENT)

        try:
            reaped = reap_port(report.port)
        except psutil.Error as e:
            return StepResult(step="reap-port", status=StepStatus.FAILED, detail=str(e))
        pids = reaped.terminated + reaped.killed
        if pids:
            self.progress(f"Stopped {len(pids)} process(es) on port {report.port}")
        if reaped.denied:
            return StepResult(
                step="reap-port",
                status=StepStatus.FAILED,
                detail=f"not permitted to stop pid(s) {', '.join(map(str, reaped.denied))}",
            )
        if not pids:
            return StepResult(step="reap-port", status=StepStatus.ABSENT, detail=str(report.port))
        return StepResult(step="reap-port", status=StepStatus.OK, detail=str(report.port))
