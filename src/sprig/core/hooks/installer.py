"""
Hook configuration installer for Claude Code.

Registers sprig as the WorktreeCreate / WorktreeRemove handler in
.claude/settings.json. Updates are non-destructive: existing settings and
other hooks are preserved, and re-running the installer is a no-op.

Resulting settings fragment:
    {
      "hooks": {
        "WorktreeCreate": [{"hooks": [{"type": "command", "command": "sprig create"}]}],
        "WorktreeRemove": [{"hooks": [{"type": "command", "command": "sprig remove"}]}]
      }
    }
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

HOOK_COMMANDS: dict[str, str] = {
    "WorktreeCreate": "sprig create",
    "WorktreeRemove": "sprig remove",
}


class HookIssue(BaseModel):
    """Represents a validation issue with hook configuration."""

    severity: str = Field(description="Issue severity: error, warning, info")
    message: str = Field(description="Human-readable issue description")
    hook_name: str | None = Field(default=None, description="Hook name if applicable")
    file_path: str | None = Field(default=None, description="Related file path if applicable")


class HookInstallResult(BaseModel):
    """Result of hook installation operation."""

    success: bool = Field(description="Whether installation succeeded")
    hooks_installed: list[str] = Field(
        default_factory=list, description="List of hooks successfully installed"
    )
    issues: list[HookIssue] = Field(default_factory=list, description="Issues encountered")
    settings_file: str | None = Field(
        default=None, description="Path to settings file that was modified"
    )
    message: str | None = Field(default=None, description="Summary message")


def _settings_file(project_dir: Path | str) -> Path:
    return Path(project_dir) / ".claude" / "settings.json"


def _is_sprig_entry(entry: Any, command: str) -> bool:
    if not isinstance(entry, dict):
        return False
    return any(
        isinstance(hook, dict) and str(hook.get("command", "")).strip() == command
        for hook in entry.get("hooks", [])
    )


def _hook_entry(command: str) -> dict[str, Any]:
    return {"hooks": [{"type": "command", "command": command}]}


def install_hooks(project_dir: Path | str, force: bool = False) -> HookInstallResult:
    """
    Install the WorktreeCreate / WorktreeRemove hooks.

    Args:
        project_dir: Project root directory
        force: If True, replace any existing handlers for these events

    Returns:
        HookInstallResult with installation details and any issues

    Example:
        >>> result = install_hooks(Path("/path/to/project"))
        >>> result.hooks_installed
        ['WorktreeCreate', 'WorktreeRemove']
    """
    settings_file = _settings_file(project_dir)
    issues: list[HookIssue] = []
    hooks_installed: list[str] = []

    if shutil.which("sprig") is None:
        issues.append(
            HookIssue(
                severity="warning",
                message="'sprig' is not on PATH; the hooks will fail until it is installed",
            )
        )

    existing_settings: dict[str, Any] = {}
    if settings_file.exists():
        try:
            with settings_file.open("r", encoding="utf-8") as f:
                existing_settings = json.load(f)
            logger.info(f"Loaded existing settings from {settings_file}")
        except (json.JSONDecodeError, OSError) as e:
            issues.append(
                HookIssue(
                    severity="error",
                    message=f"Could not parse existing settings.json: {e}",
                    file_path=str(settings_file),
                )
            )
            return HookInstallResult(
                success=False,
                issues=issues,
                settings_file=str(settings_file),
                message="Refusing to overwrite unreadable settings file",
            )

    if not isinstance(existing_settings, dict) or not isinstance(
        existing_settings.get("hooks", {}), dict
    ):
        issues.append(
            HookIssue(
                severity="error",
                message="settings.json does not hold a JSON object with a \"hooks\" object",
                file_path=str(settings_file),
            )
        )
        return HookInstallResult(
            success=False,
            issues=issues,
            settings_file=str(settings_file),
            message="Refusing to overwrite unexpected settings file",
        )

    hooks_config: dict[str, Any] = existing_settings.get("hooks", {})

    for event, command in HOOK_COMMANDS.items():
        entries = hooks_config.get(event, [])
        if force or not entries:
            hooks_config[event] = [_hook_entry(command)]
            hooks_installed.append(event)
        elif any(_is_sprig_entry(entry, command) for entry in entries):
            logger.info(f"Hook {event} already configured, skipping")
        else:
            # Only one handler may answer a worktree event
            issues.append(
                HookIssue(
                    severity="warning",
                    message=f"{event} already has another handler; use --force to replace it",
                    hook_name=event,
                )
            )

    updated_settings = existing_settings.copy()
    updated_settings["hooks"] = hooks_config

    try:
        settings_file.parent.mkdir(parents=True, exist_ok=True)
        with settings_file.open("w", encoding="utf-8") as f:
            json.dump(updated_settings, f, indent=2)
            f.write("\n")
        logger.info(f"Wrote updated settings to {settings_file}")
    except OSError as e:
        issues.append(
            HookIssue(
                severity="error",
                message=f"Failed to write settings.json: {e}",
                file_path=str(settings_file),
            )
        )
        return HookInstallResult(
            success=False,
            issues=issues,
            settings_file=str(settings_file),
            message="Failed to write settings file",
        )

    message = (
        f"Installed {len(hooks_installed)} hooks"
        if hooks_installed
        else "All hooks already configured"
    )
    return HookInstallResult(
        success=True,
        hooks_installed=hooks_installed,
        issues=issues,
        settings_file=str(settings_file),
        message=message,
    )


def validate_hooks(project_dir: Path | str) -> list[HookIssue]:
    """
    Validate hook configuration.

    Checks that .claude/settings.json exists, parses, and routes both
    worktree events to sprig.

    Returns:
        List of validation issues (empty if all checks pass)
    """
    settings_file = _settings_file(project_dir)
    issues: list[HookIssue] = []

    if not settings_file.exists():
        issues.append(
            HookIssue(
                severity="error",
                message=".claude/settings.json not found (hooks not installed)",
                file_path=str(settings_file),
            )
        )
        return issues

    try:
        with settings_file.open("r", encoding="utf-8") as f:
            settings = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        issues.append(
            HookIssue(
                severity="error",
                message=f"Could not read settings.json: {e}",
                file_path=str(settings_file),
            )
        )
        return issues

    hooks_config = settings.get("hooks") if isinstance(settings, dict) else None
    if not isinstance(hooks_config, dict):
        hooks_config = {}

    for event, command in HOOK_COMMANDS.items():
        entries = hooks_config.get(event)
        if not entries:
            issues.append(
                HookIssue(severity="error", message=f"Hook {event} not configured", hook_name=event)
            )
        elif not any(_is_sprig_entry(entry, command) for entry in entries):
            issues.append(
                HookIssue(
                    severity="warning",
                    message=f"Hook {event} does not run '{command}'",
                    hook_name=event,
                )
            )

    if shutil.which("sprig") is None:
        issues.append(HookIssue(severity="warning", message="'sprig' is not on PATH"))

    return issues


def uninstall_hooks(project_dir: Path | str) -> bool:
    """
    Remove sprig's hook entries from .claude/settings.json.

    Other settings and other hooks are preserved. Events left with no
    handlers are dropped.

    Returns:
        True if the settings file was modified

    Raises:
        OSError: If the updated settings cannot be written
    """
    settings_file = _settings_file(project_dir)

    if not settings_file.exists():
        logger.info("No settings file found, nothing to uninstall")
        return False

    try:
        with settings_file.open("r", encoding="utf-8") as f:
            settings = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read settings.json: {e}")
        return False

    if not isinstance(settings, dict) or not isinstance(settings.get("hooks"), dict):
        return False

    hooks_config = settings.get("hooks", {})
    modified = False

    for event, command in HOOK_COMMANDS.items():
        entries = hooks_config.get(event)
        if not isinstance(entries, list):
            continue
        remaining = [entry for entry in entries if not _is_sprig_entry(entry, command)]
        if len(remaining) != len(entries):
            modified = True
            if remaining:
                hooks_config[event] = remaining
            else:
                del hooks_config[event]

    if not modified:
        return False

    if hooks_config:
        settings["hooks"] = hooks_config
    else:
        settings.pop("hooks", None)

    with settings_file.open("w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
        f.write("\n")
    logger.info(f"Removed sprig hooks from {settings_file}")
    return True
