"""
Process management utilities for module subprocesses.

This module provides:
- Liveness checks for a whole process group
- Bounded termination: SIGTERM first, SIGKILL once the grace period runs out

Modules are started in their own session, so a launcher that forks the real
server (an AppImage runtime does) still leaves everything in one process
group. Signalling the group reaches the forked children too.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from typing import Optional

# Time allowed for the kernel to reap a process after SIGKILL
KILL_WAIT_S = 2.0
# Poll period while waiting for a process group to empty
GROUP_POLL_S = 0.05


def is_group_running(pgid: int) -> bool:
    """
    Check if any process in the given process group is still alive.

    Unix only; zombies that have not been reaped yet still count.
    """
    if pgid <= 0:
        return False
    try:
        os.killpg(pgid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # the group exists but belongs to someone else
        return True


def _supports_groups() -> bool:
    return sys.platform != "win32"


def _alive(proc: subprocess.Popen, group: bool) -> bool:
    # poll() first so an exited leader is reaped before the group check
    leader_alive = proc.poll() is None
    return leader_alive or (group and is_group_running(proc.pid))


def _send(proc: subprocess.Popen, force: bool, group: bool) -> None:
    if group:
        os.killpg(proc.pid, signal.SIGKILL if force else signal.SIGTERM)
    elif force:
        proc.kill()
    else:
        proc.terminate()


def _wait_gone(proc: subprocess.Popen, group: bool, timeout: float) -> bool:
    """Wait until the process (and its group) is gone. Returns False on timeout."""
    if not group:
        try:
            proc.wait(timeout=max(0.0, timeout))
            return True
        except subprocess.TimeoutExpired:
            return False

    end = time.monotonic() + max(0.0, timeout)
    while _alive(proc, group):
        remaining = end - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(GROUP_POLL_S, remaining))
    return True


def terminate_process(
    proc: subprocess.Popen,
    timeout: float,
    logger: Optional[logging.Logger] = None,
    group: bool = False,
) -> bool:
    """
    Stop a child process within roughly `timeout` seconds.

    Args:
        proc: The child to stop.
        timeout: Grace period for SIGTERM before escalating to SIGKILL.
        group: Signal the child's whole process group (the child must lead
            its own session, e.g. started with start_new_session=True).

    Returns:
        True if the process had to be force killed.

    Raises:
        subprocess.TimeoutExpired: The process survived SIGKILL.
    """
    log = logger or logging.getLogger(__name__)
    group = group and _supports_groups()

    if not _alive(proc, group):
        return False

    try:
        _send(proc, False, group)
    except ProcessLookupError:
        return False

    if _wait_gone(proc, group, timeout):
        log.debug(f"Process {proc.pid} exited with code {proc.returncode}")
        return False
    log.warning(f"Process {proc.pid} didn't stop gracefully, force killing...")

    try:
        _send(proc, True, group)
    except ProcessLookupError:
        pass
    proc.wait(timeout=KILL_WAIT_S)
    if group and not _wait_gone(proc, group, KILL_WAIT_S):
        log.warning(f"Process group {proc.pid} still has members after SIGKILL")
    return True
