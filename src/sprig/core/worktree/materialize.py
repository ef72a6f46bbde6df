"""
Environment materialization for new worktrees.

Copies untracked env files and data directories from the source repository
into a fresh worktree, then writes the port override file. The override is
written last so a copied file of the same name never wins over the derived
port.
"""

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from sprig.core.worktree.models import MaterializeResult, StepResult, StepStatus

logger = logging.getLogger(__name__)


def _copy_file(src_root: Path, dest_root: Path, rel: str) -> StepResult:
    src = src_root / rel
    step = f"copy:{rel}"
    if not src.is_file():
        return StepResult(step=step, status=StepStatus.ABSENT)
    dest = dest_root / rel
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        logger.warning(f"Could not copy {src}: {e}")
        return StepResult(step=step, status=StepStatus.FAILED, detail=str(e))
    return StepResult(step=step, status=StepStatus.OK)


def _copy_dir(src_root: Path, dest_root: Path, rel: str) -> StepResult:
    src = src_root / rel
    step = f"copy:{rel}"
    if not src.is_dir():
        return StepResult(step=step, status=StepStatus.ABSENT)
    try:
        shutil.copytree(src, dest_root / rel, symlinks=True, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        logger.warning(f"Could not copy directory {src}: {e}")
        return StepResult(step=step, status=StepStatus.FAILED, detail=str(e))
    return StepResult(step=step, status=StepStatus.OK)


def write_port_override(override_file: Path, port: int, key: str = "DEV_PORT") -> None:
    """Write ``<key>=<port>`` as the entire content of the override file."""
    override_file.parent.mkdir(parents=True, exist_ok=True)
    override_file.write_text(f"{key}={port}\n")


def materialize(
    repo_root: Path,
    worktree_path: Path,
    files: Iterable[str],
    dirs: Iterable[str],
    *,
    port: int,
    override_file: str = ".env.local",
    port_key: str = "DEV_PORT",
) -> MaterializeResult:
    """
    Populate a worktree with env files, directories and the port override.

    Missing sources are skipped (absent, not an error). Copy failures are
    recorded and the remaining items are still processed. Writing the
    override file is not best-effort: if it fails the OSError propagates.

    Args:
        repo_root: Source repository root
        worktree_path: Destination worktree
        files: File paths relative to the repository root
        dirs: Directory paths relative to the repository root
        port: Derived port to write
        override_file: Override file name, relative to the worktree
        port_key: Key the port is written under

    Returns:
        MaterializeResult listing one step per file/directory
    """
    steps: list[StepResult] = []

    for rel in files:
        steps.append(_copy_file(repo_root, worktree_path, rel))

    for rel in dirs:
        steps.append(_copy_dir(repo_root, worktree_path, rel))

    target = worktree_path / override_file
    write_port_override(target, port, port_key)
    logger.debug(f"Wrote {port_key}={port} to {target}")

    return MaterializeResult(steps=steps, override_file=target, port=port)
