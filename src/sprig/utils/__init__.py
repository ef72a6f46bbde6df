"""Utility modules for sprig."""

from .channels import ResultChannel, open_progress_console

__all__ = [
    "ResultChannel",
    "open_progress_console",
]
