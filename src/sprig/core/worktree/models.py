"""
Data models for the worktree lifecycle.

Requests arrive from the host as JSON on stdin; reports describe what a
create or remove run did. Recoverable outcomes are modelled explicitly:

- ``StepStatus.OK``: the step did its work
- ``StepStatus.ABSENT``: nothing to do, and that is expected (no .env in the
  source repo, no process on the port, worktree already gone)
- ``StepStatus.FAILED``: the step failed but the workflow carried on
- ``StepStatus.SKIPPED``: the step was refused on purpose (e.g. a branch
  that sprig did not create is never deleted)

Fatal conditions are exceptions (see exceptions.py), never report values.
"""

from enum import Enum
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sprig.core.config.models import SprigConfig
from sprig.core.worktree.exceptions import InvalidRequestError
from sprig.core.worktree.naming import (
    branch_for,
    derive_port,
    validate_task_name,
    worktree_path_for,
)


class CreateRequest(BaseModel):
    """WorktreeCreate payload. Only ``name`` is used; other host fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(description="Task name, becomes the worktree directory name")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_task_name(v)

    @classmethod
    def parse(cls, raw: str) -> "CreateRequest":
        """Parse stdin text, raising InvalidRequestError on any problem."""
        return _parse_request(cls, raw)


class RemoveRequest(BaseModel):
    """WorktreeRemove payload."""

    model_config = ConfigDict(extra="ignore")

    worktree_path: str = Field(min_length=1, description="Absolute worktree path")

    @field_validator("worktree_path")
    @classmethod
    def validate_absolute(cls, v: str) -> str:
        if not Path(v).is_absolute():
            raise ValueError(f"worktree_path must be absolute: {v}")
        return v

    @classmethod
    def parse(cls, raw: str) -> "RemoveRequest":
        """Parse stdin text, raising InvalidRequestError on any problem."""
        return _parse_request(cls, raw)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_request(model: type[ModelT], raw: str) -> ModelT:
    if not raw.strip():
        raise InvalidRequestError("Empty request on stdin")
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidRequestError(f"Invalid request: {problems}") from e


class WorktreeRecord(BaseModel):
    """
    The full identity of a task worktree, derived from its name.

    Never written to disk; rebuilt from the name whenever needed.
    """

    name: str
    path: Path
    branch: str
    port: int

    @classmethod
    def derive(cls, repo_root: Path, name: str, config: SprigConfig) -> "WorktreeRecord":
        branch = branch_for(name, config.branch_prefix)
        return cls(
            name=name,
            path=worktree_path_for(repo_root, name, config.worktrees_dir),
            branch=branch,
            port=derive_port(
                branch,
                low=config.port.low,
                span=config.port.span,
                digits=config.port.digits,
            ),
        )


class StepStatus(str, Enum):
    """Outcome of a best-effort step."""

    OK = "ok"
    ABSENT = "absent"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepResult(BaseModel):
    """One best-effort step and what came of it."""

    step: str = Field(description="Step identifier, e.g. 'copy:.env' or 'remove-worktree'")
    status: StepStatus
    detail: str | None = Field(default=None, description="Human-readable detail")

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED


class SetupFailure(BaseModel):
    """A setup command that did not succeed."""

    command: str
    exit_code: int | None = Field(default=None, description="None if the command never started")
    message: str

    def __str__(self) -> str:
        return self.message


class ProvisionResult(BaseModel):
    """What the provisioner did to put a worktree at the target path."""

    path: Path
    branch: str
    created_worktree: bool = Field(description="False when an existing worktree was reused")
    created_branch: bool = Field(description="False when an existing branch was attached")


class MaterializeResult(BaseModel):
    """Outcome of copying env files/dirs and writing the port override."""

    steps: list[StepResult] = Field(default_factory=list)
    override_file: Path
    port: int

    @property
    def copied(self) -> list[str]:
        return [s.step.split(":", 1)[1] for s in self.steps if s.status == StepStatus.OK]


class ReapResult(BaseModel):
    """Processes terminated because they were bound to the worktree's port."""

    port: int
    terminated: list[int] = Field(default_factory=list)
    killed: list[int] = Field(default_factory=list)
    denied: list[int] = Field(default_factory=list)


class CreationReport(BaseModel):
    """Result of a complete create run."""

    record: WorktreeRecord
    provision: ProvisionResult
    materialize: MaterializeResult
    setup_failures: list[SetupFailure] = Field(default_factory=list)
    setup_log: Path | None = None

    @property
    def path(self) -> Path:
        return self.record.path

    @property
    def has_warnings(self) -> bool:
        return bool(self.setup_failures)


class RemovalReport(BaseModel):
    """Result of a complete remove run."""

    worktree_path: Path
    already_absent: bool = False
    branch: str | None = None
    port: int | None = None
    steps: list[StepResult] = Field(default_factory=list)

    @property
    def failures(self) -> list[StepResult]:
        return [s for s in self.steps if s.failed]
