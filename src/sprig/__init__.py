"""
Sprig - ephemeral per-task git worktrees

Provisions and tears down isolated worktrees for parallel coding sessions,
each with its own branch and a deterministic dev port.
"""

__version__ = "0.3.0"

# Re-export core models for convenience
from sprig.core.config.models import SprigConfig
from sprig.core.worktree.naming import derive_port

__all__ = ["SprigConfig", "derive_port", "__version__"]
