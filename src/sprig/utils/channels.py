"""
Output channels for hook invocations.

The host parses stdout of ``sprig create`` as the worktree path and nothing
else, so two channels are kept strictly apart:

- the result channel (stdout): exactly one line, written once at the end
- the progress channel (/dev/tty, falling back to stderr): everything a
  human might want to read

While a ResultChannel is open, Python-level writes to sys.stdout land on
stderr and, when stdout is a real file descriptor, fd 1 itself points at
stderr so child processes cannot write to it either.
"""

from __future__ import annotations

import contextlib
import logging
import os
import sys
from collections.abc import Iterator
from types import TracebackType
from typing import IO

from rich.console import Console

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def open_progress_console(tty_path: str = "/dev/tty") -> Iterator[Console]:
    """
    Console for human-readable progress that never touches stdout.

    Writes to the controlling terminal so the text is visible even when the
    host captures both stdout and stderr. Falls back to stderr when there is
    no terminal (CI, detached runs). The terminal is closed on exit.

    Example:
        >>> with open_progress_console() as progress:
        ...     progress.print("Copying env files...")
    """
    try:
        handle: IO[str] = open(tty_path, "w", encoding="utf-8")
    except OSError:
        yield Console(stderr=True)
        return
    with handle:
        yield Console(file=handle)


class ResultChannel:
    """
    Guards stdout for the duration of a workflow and emits the single result.

    Example:
        >>> with ResultChannel() as channel:
        ...     report = lifecycle.create(name)
        ...     channel.emit(str(report.path))
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream
        self._saved_fd: int | None = None
        self._redirect: contextlib.redirect_stdout[IO[str]] | None = None
        self.emitted: str | None = None

    def __enter__(self) -> ResultChannel:
        if self._stream is None:
            self._stream = sys.stdout
        self._stream.flush()

        try:
            stdout_fd = self._stream.fileno()
            stderr_fd = sys.stderr.fileno()
        except (AttributeError, OSError, ValueError):
            # In-memory streams (tests, embedding) have no descriptor to guard
            stdout_fd = stderr_fd = None

        if stdout_fd is not None and stderr_fd is not None:
            self._saved_fd = os.dup(stdout_fd)
            os.dup2(stderr_fd, stdout_fd)

        self._redirect = contextlib.redirect_stdout(sys.stderr)
        self._redirect.__enter__()
        return self

    def _release(self) -> None:
        if self._redirect is not None:
            self._redirect.__exit__(None, None, None)
            self._redirect = None
        if self._saved_fd is not None and self._stream is not None:
            sys.stderr.flush()
            os.dup2(self._saved_fd, self._stream.fileno())
            os.close(self._saved_fd)
            self._saved_fd = None

    def emit(self, line: str) -> None:
        """
        Restore stdout and write ``line`` as the one and only result.

        Raises:
            RuntimeError: If called twice or if ``line`` contains a newline
        """
        if self.emitted is not None:
            raise RuntimeError("result already emitted")
        if "\n" in line or "\r" in line:
            raise RuntimeError("result must be a single line")
        self._release()
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()
        self.emitted = line

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._release()
