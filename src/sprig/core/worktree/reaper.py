"""
Dev server cleanup for worktrees being removed.

The port a worktree was given at creation is read back from its override
file (parsed as a KEY=VALUE env file, not scraped with a regex), and every
process holding a local socket on that port is terminated: SIGTERM first,
SIGKILL for anything still alive after a short grace period.
"""

import logging
import os
from pathlib import Path

import psutil

from sprig.core.config.env import read_env_file
from sprig.core.worktree.models import ReapResult

logger = logging.getLogger(__name__)

GRACE_SECONDS = 3.0


def read_port(override_file: Path, key: str = "DEV_PORT") -> int | None:
    """
    Read the derived port back from a worktree's override file.

    Returns:
        The port, or None if the file or key is missing or the value is not
        a valid port number
    """
    values = read_env_file(override_file)
    raw = values.get(key)
    if raw is None:
        return None
    try:
        port = int(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring non-numeric {key}={raw!r} in {override_file}")
        return None
    if not 0 < port < 65536:
        logger.warning(f"Ignoring out-of-range {key}={port} in {override_file}")
        return None
    return port


def find_port_owners(port: int) -> list[psutil.Process]:
    """
    Processes with a local inet socket bound to ``port``.

    Processes that vanish or cannot be inspected are skipped. The current
    process is never included.
    """
    me = os.getpid()
    owners: list[psutil.Process] = []
    for proc in psutil.process_iter(["pid", "name"]):
        if proc.pid == me:
            continue
        try:
            connections = proc.net_connections(kind="inet")
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        if any(conn.laddr and conn.laddr.port == port for conn in connections):
            owners.append(proc)
    return owners


def reap_port(port: int, grace_seconds: float = GRACE_SECONDS) -> ReapResult:
    """
    Terminate every process bound to ``port``.

    No process on the port is not an error. Processes we are not allowed to
    signal are listed in ``denied``.
    """
    result = ReapResult(port=port)
    signalled: list[psutil.Process] = []

    for proc in find_port_owners(port):
        try:
            proc.terminate()
            signalled.append(proc)
            logger.info(f"Sent SIGTERM to pid {proc.pid} on port {port}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Not permitted to terminate pid {proc.pid} on port {port}")
            result.denied.append(proc.pid)

    if not signalled:
        return result

    gone, alive = psutil.wait_procs(signalled, timeout=grace_seconds)
    result.terminated.extend(p.pid for p in gone)

    for proc in alive:
        try:
            proc.kill()
            result.killed.append(proc.pid)
            logger.info(f"Sent SIGKILL to pid {proc.pid} on port {port}")
        except psutil.NoSuchProcess:
            result.terminated.append(proc.pid)
        except psutil.AccessDenied:
            result.denied.append(proc.pid)

    return result
