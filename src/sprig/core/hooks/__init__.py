"""
Claude Code hook registration.

Installs, validates and removes the WorktreeCreate / WorktreeRemove entries
in .claude/settings.json that route worktree events to sprig.

Usage:
    from sprig.core.hooks import install_hooks, validate_hooks

    result = install_hooks(project_dir)
    issues = validate_hooks(project_dir)
"""

from sprig.core.hooks.installer import (
    HOOK_COMMANDS,
    HookInstallResult,
    HookIssue,
    install_hooks,
    uninstall_hooks,
    validate_hooks,
)

__all__ = [
    "HOOK_COMMANDS",
    "HookInstallResult",
    "HookIssue",
    "install_hooks",
    "uninstall_hooks",
    "validate_hooks",
]
