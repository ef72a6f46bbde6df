"""
Configuration data models for sprig.

These models define the structure of .sprig.json and ~/.config/sprig/config.json
files, with validation and type safety via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class PortConfig(BaseModel):
    """
    Deterministic dev port derivation.

    Ports are derived from the task branch name and land in [low, low + span).
    """
    low: int = Field(
        default=3100,
        ge=1,
        le=65535,
        description="Lowest port that can be assigned"
    )
    span: int = Field(
        default=6900,
        ge=1,
        description="Number of ports in the assignable range"
    )
    digits: int = Field(
        default=5,
        ge=1,
        le=32,
        description="How many decimal digits of the digest are used"
    )

    @field_validator("span")
    @classmethod
    def validate_span(cls, v: int, info: ValidationInfo) -> int:
        low = info.data.get("low", 3100)
        if low + v - 1 > 65535:
            raise ValueError(f"port range {low}..{low + v - 1} exceeds 65535")
        return v


class EnvConfig(BaseModel):
    """
    Files and directories copied from the source repository.

    The override file is always regenerated afterwards with the derived port.
    """
    files: list[str] = Field(
        default_factory=lambda: [".env", ".env.local"],
        description="Env files copied into the worktree if present"
    )
    dirs: list[str] = Field(
        default_factory=list,
        description="Directories copied recursively if present (e.g. data, fixtures)"
    )
    override_file: str = Field(
        default=".env.local",
        description="File written last with the derived port"
    )
    port_key: str = Field(
        default="DEV_PORT",
        pattern=r"^[A-Za-z_][A-Za-z0-9_]*$",
        description="Key under which the derived port is written"
    )


class SetupCommand(BaseModel):
    """A project setup command run inside a fresh worktree."""
    name: str | None = Field(default=None, description="Label shown in progress output")
    command: str = Field(min_length=1, description="Shell command, run with cwd=worktree")

    @property
    def label(self) -> str:
        return self.name or self.command


class SetupConfig(BaseModel):
    """
    Dependency installation inside new worktrees.

    Every command runs even if an earlier one failed.
    """
    commands: list[SetupCommand] = Field(
        default_factory=list,
        description="Commands to run in order (e.g. 'npm install')"
    )
    log_file: str = Field(
        default=".worktree-setup.log",
        description="Log file inside the worktree that receives command output"
    )


class SprigConfig(BaseModel):
    """
    Top-level sprig configuration.

    Loaded from defaults < user config < project config < SPRIG_* env vars.
    """
    model_config = ConfigDict(extra="ignore")

    worktrees_dir: str = Field(
        default=".claude/worktrees",
        description="Directory, relative to the repo root, holding managed worktrees"
    )
    branch_prefix: str = Field(
        default="worktree-",
        min_length=1,
        description="Prefix of task branches; only these are ever deleted"
    )
    env: EnvConfig = Field(default_factory=EnvConfig)
    port: PortConfig = Field(default_factory=PortConfig)
    setup: SetupConfig = Field(default_factory=SetupConfig)
    progress_tty: str = Field(
        default="/dev/tty",
        description="Terminal device used for human-readable progress"
    )

    @field_validator("worktrees_dir")
    @classmethod
    def validate_worktrees_dir(cls, v: str) -> str:
        if not v or v.startswith("/") or ".." in v.split("/"):
            raise ValueError("worktrees_dir must be a relative path inside the repository")
        return v.rstrip("/")
